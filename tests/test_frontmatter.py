"""Tests for frontmatter parsing."""

from cellm.frontmatter import parse_frontmatter, split_frontmatter


def test_split_frontmatter():
    metadata, body = split_frontmatter("---\nid: RULE-1\nbudget: ~200 tokens\n---\n# Body\n")

    assert metadata == {"id": "RULE-1", "budget": "~200 tokens"}
    assert body == "# Body\n"


def test_keys_keep_declaration_order():
    metadata = parse_frontmatter("---\nz: 1\na: 2\nm: 3\n---\n")

    assert list(metadata) == ["z", "a", "m"]


def test_no_frontmatter():
    metadata, body = split_frontmatter("# Just a heading\n")

    assert metadata == {}
    assert body == "# Just a heading\n"


def test_malformed_yaml_falls_back_to_empty():
    metadata, body = split_frontmatter("---\nid: [unclosed\n---\nbody\n")

    assert metadata == {}
    assert body == "body\n"


def test_non_mapping_frontmatter_is_ignored():
    assert parse_frontmatter("---\n- a\n- b\n---\n") == {}


def test_body_horizontal_rules_are_preserved():
    _, body = split_frontmatter("---\nid: X\n---\nabove\n\n---\n\nbelow\n")

    assert "---" in body
    assert body.endswith("below\n")


def test_fence_only_closes_at_line_start():
    metadata, body = split_frontmatter(
        "---\ndescription: Core rules ---\nbudget: ~300 tokens\n---\n# Body\n"
    )

    assert metadata == {"description": "Core rules ---", "budget": "~300 tokens"}
    assert body == "# Body\n"


def test_empty_header():
    metadata, body = split_frontmatter("---\n---\nbody")

    assert metadata == {}
    assert body == "body"
