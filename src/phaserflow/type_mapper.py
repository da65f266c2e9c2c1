"""Maps Phaser Editor object kinds to the type names used in generated code.

Unknown kinds are never an error: they fall back to ``any`` so a descriptor
written by a newer editor version still transforms.
"""

from __future__ import annotations

FALLBACK_TYPE = "any"

# Kinds exported directly from Phaser.GameObjects
GAME_OBJECT_KINDS = frozenset(
    {
        "Image",
        "Sprite",
        "TileSprite",
        "NineSlice",
        "ThreeSlice",
        "Video",
        "Container",
        "Layer",
        "Text",
        "BitmapText",
        "Rectangle",
        "Ellipse",
        "Triangle",
        "Polygon",
        "RoundedRectangleGraphics",
        "RoundedRectangleImage",
    }
)

KIND_TYPES = {
    # Arcade physics
    "ArcadeImage": "Phaser.Physics.Arcade.Image",
    "ArcadeSprite": "Phaser.Physics.Arcade.Sprite",
    "Collider": "Phaser.Physics.Arcade.Collider",
    # Box2D bodies and shapes
    "b2Body": "b2Body",
    "b2OffsetPolygonShape": "b2OffsetPolygonShape",
    "b2BoxShape": "b2BoxShape",
    "b2PolygonShape": "b2PolygonShape",
    # Particles and tilemaps
    "ParticleEmitter": "Phaser.GameObjects.Particles.ParticleEmitter",
    "TilemapLayer": "Phaser.Tilemaps.TilemapLayer",
    "Tilemap": "Phaser.Tilemaps.Tilemap",
    "EditableTilemap": "Phaser.Tilemaps.Tilemap",
    # Plugins
    "SpineGameObject": "SpineGameObject",
}


def map_kind(kind: str) -> str:
    """Get the canonical type name for a descriptor item kind.

    Args:
        kind: The ``type`` value of a descriptor item (e.g. "Image")

    Returns:
        Fully-qualified type name, or "any" for unknown kinds
    """
    if kind in GAME_OBJECT_KINDS:
        return f"Phaser.GameObjects.{kind}"
    return KIND_TYPES.get(kind, FALLBACK_TYPE)
