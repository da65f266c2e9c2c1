"""Tests for instantiation analysis."""

import textwrap

from phaserflow.analyzer import InstantiationRecord, analyze_function, constructed_type_name
from phaserflow.syntax import TYPED, find_function_sites, iter_nodes, parse_script


def _analyze(source: str, context_name: str = "scene"):
    parsed = parse_script(textwrap.dedent(source), TYPED)
    body = find_function_sites(parsed)[0].body
    return analyze_function(parsed, body, context_name)


class TestInstantiationRecords:
    """Tests for discovering locals initialized with `new`."""

    def test_records_constructor_initializers(self):
        analysis = _analyze(
            """
            function create() {
                const hero = new Hero(this);
                let ground = new Phaser.GameObjects.Rectangle(this, 0, 0);
                var count = 5;
                const label = makeLabel();
            }
            """
        )

        assert [(r.variable_name, r.constructed_type) for r in analysis.records] == [
            ("hero", "Hero"),
            ("ground", "Phaser.GameObjects.Rectangle"),
        ]

    def test_type_arguments_are_kept(self):
        analysis = _analyze(
            """
            function create() {
                const lookup = new Map<string, Hero>();
            }
            """
        )

        assert analysis.types_for("lookup") == ["Map<string, Hero>"]

    def test_dynamic_constructor_is_any(self):
        analysis = _analyze(
            """
            function create() {
                const widget = new (pickWidget())();
            }
            """
        )

        assert analysis.types_for("widget") == ["any"]

    def test_annotated_declaration(self):
        analysis = _analyze(
            """
            function create() {
                const hero: Hero = new Hero();
            }
            """
        )

        assert analysis.types_for("hero") == ["Hero"]

    def test_destructuring_is_ignored(self):
        analysis = _analyze(
            """
            function create() {
                const { a } = new Pair();
            }
            """
        )

        assert analysis.records == []

    def test_same_name_in_disjoint_blocks_keeps_both(self):
        """Test that redeclarations are distinct records keyed by declaration site."""
        analysis = _analyze(
            """
            function create(flag: boolean) {
                if (flag) {
                    const enemy = new Slime();
                } else {
                    const enemy = new Bat();
                }
            }
            """
        )

        assert len(analysis.records) == 2
        assert analysis.records[0].declaration_site < analysis.records[1].declaration_site
        assert analysis.types_for("enemy") == ["Slime", "Bat"]

    def test_records_are_value_objects(self):
        assert InstantiationRecord("a", "A", 1) == InstantiationRecord("a", "A", 1)


class TestPublication:
    """Tests for detecting locals assigned onto the scene."""

    def test_this_and_scene_assignments_publish(self):
        analysis = _analyze(
            """
            function create(scene) {
                const hero = new Hero();
                const map = new Tilemap();
                this.hero = hero;
                scene.map = map;
            }
            """
        )

        assert analysis.published == ["hero", "map"]
        assert analysis.published_fields() == [("hero", ["Hero"]), ("map", ["Tilemap"])]

    def test_unpublished_instance_is_excluded(self):
        analysis = _analyze(
            """
            function create() {
                const hero = new Hero();
                const z = new Baz();
                this.hero = hero;
            }
            """
        )

        assert analysis.published == ["hero"]

    def test_name_must_match(self):
        analysis = _analyze(
            """
            function create() {
                const hero = new Hero();
                this.player = hero;
            }
            """
        )

        assert analysis.published == []

    def test_other_receivers_do_not_publish(self):
        analysis = _analyze(
            """
            function create() {
                const hero = new Hero();
                world.hero = hero;
                this.registry.hero = hero;
            }
            """
        )

        assert analysis.published == []

    def test_plain_values_are_not_published(self):
        analysis = _analyze(
            """
            function create() {
                const speed = 10;
                this.speed = speed;
            }
            """
        )

        assert analysis.published == []

    def test_publication_order_is_first_assignment(self):
        analysis = _analyze(
            """
            function create() {
                const a = new A();
                const b = new B();
                this.b = b;
                this.a = a;
                this.b = b;
            }
            """
        )

        assert analysis.published == ["b", "a"]

    def test_publication_before_declaration_counts(self):
        """Test that the assignment pass does not depend on visiting order."""
        analysis = _analyze(
            """
            function create() {
                const init = () => { this.hero = hero; };
                const hero = new Hero();
                init();
            }
            """
        )

        assert analysis.published == ["hero"]

    def test_custom_context_name(self):
        analysis = _analyze(
            """
            function create(ctx) {
                const hero = new Hero();
                ctx.hero = hero;
            }
            """,
            context_name="ctx",
        )

        assert analysis.published == ["hero"]


class TestConstructedTypeName:
    """Tests for naming constructed types."""

    def test_member_chain(self):
        parsed = parse_script("const s = new Phaser . GameObjects . Sprite();\n", TYPED)
        new_expression = next(n for n in iter_nodes(parsed.root) if n.type == "new_expression")

        assert constructed_type_name(parsed, new_expression) == "Phaser.GameObjects.Sprite"

    def test_this_member_is_any(self):
        parsed = parse_script("function f() { const s = new this.Factory(); }\n", TYPED)
        new_expression = next(n for n in iter_nodes(parsed.root) if n.type == "new_expression")

        assert constructed_type_name(parsed, new_expression) == "any"
