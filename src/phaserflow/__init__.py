"""Phaser Editor scene script synchronizer.

Mirrors a Phaser Editor project into a build tree and rewrites scene scripts
into exported, scene-bound functions with a synthesized ``SceneExtensions``
type describing what they publish on the scene.
"""

from importlib.metadata import version

__version__ = version("phaserflow")

from phaserflow.errors import (
    ConfigError,
    DescriptorTooDeepError,
    MalformedDescriptorError,
    TransformError,
    UnsupportedSyntaxError,
)
from phaserflow.type_mapper import map_kind
from phaserflow.descriptor import (
    DescriptorDocument,
    DisplayItem,
    PublicMember,
    descriptor_path_for,
    read_public_members,
)
from phaserflow.syntax import (
    PLAIN,
    TYPED,
    ScriptDialect,
    dialect_for_path,
    parse_script,
)
from phaserflow.analyzer import (
    InstantiationAnalysis,
    InstantiationRecord,
    analyze_function,
)
from phaserflow.rewriter import (
    SCENE_EXTENSIONS,
    RewriteOutcome,
    SceneField,
    ScriptRewriter,
)
from phaserflow.config import (
    SyncConfig,
    TransformOptions,
    load_config,
)
from phaserflow.transformer import (
    ScriptTransformer,
    TransformResult,
    TransformStatus,
    should_transform,
    transform,
)
from phaserflow.sync import (
    SceneSyncer,
    SyncAction,
    SyncOutcome,
    SyncReport,
)
from phaserflow.cleanup import (
    CleanupReport,
    clean_build,
    clean_non_json_files,
    clean_public_root_files,
)

__all__ = [
    # Errors
    "ConfigError",
    "DescriptorTooDeepError",
    "MalformedDescriptorError",
    "TransformError",
    "UnsupportedSyntaxError",
    # Descriptor classes
    "DescriptorDocument",
    "DisplayItem",
    "PublicMember",
    # Descriptor functions
    "descriptor_path_for",
    "read_public_members",
    "map_kind",
    # Syntax
    "PLAIN",
    "TYPED",
    "ScriptDialect",
    "dialect_for_path",
    "parse_script",
    # Analysis and rewriting
    "InstantiationAnalysis",
    "InstantiationRecord",
    "analyze_function",
    "SCENE_EXTENSIONS",
    "RewriteOutcome",
    "SceneField",
    "ScriptRewriter",
    # Configuration
    "SyncConfig",
    "TransformOptions",
    "load_config",
    # Transformation
    "ScriptTransformer",
    "TransformResult",
    "TransformStatus",
    "should_transform",
    "transform",
    # Synchronization
    "SceneSyncer",
    "SyncAction",
    "SyncOutcome",
    "SyncReport",
    # Cleanup
    "CleanupReport",
    "clean_build",
    "clean_non_json_files",
    "clean_public_root_files",
]
