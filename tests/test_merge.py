from kbcurator.merge import merge_blocks


def test_merge_both_empty():
    assert merge_blocks(b"", b"") == ""


def test_merge_first_render():
    new = b"""# Title

<!-- CURATOR:BEGIN block=a zone=editorial provenance=h-a -->
fresh content
<!-- CURATOR:END block=a -->
"""
    assert "fresh content" in merge_blocks(None, new)


def test_merge_exact_output_shape():
    new = (
        "<!-- CURATOR:BEGIN block=a zone=editorial provenance=h1 -->\n"
        "body\n<!-- CURATOR:END block=a -->\n"
    )
    assert merge_blocks("", new) == new + "\n"


def test_merge_marker_without_attributes():
    new = "<!-- CURATOR:BEGIN block=x -->\nb\n<!-- CURATOR:END block=x -->"
    assert merge_blocks(None, new) == (
        "<!-- CURATOR:BEGIN block=x -->\nb\n<!-- CURATOR:END block=x -->\n"
    )


def test_merge_editorial_preserved_same_provenance():
    existing = b"""<!-- CURATOR:BEGIN block=a zone=editorial provenance=h1 -->
human-polished body
<!-- CURATOR:END block=a -->
"""
    new = b"""<!-- CURATOR:BEGIN block=a zone=editorial provenance=h1 -->
fresh body from new render
<!-- CURATOR:END block=a -->
"""
    got = merge_blocks(existing, new)
    assert "human-polished body" in got
    assert "fresh body from new render" not in got


def test_merge_editorial_overwritten_different_provenance():
    existing = b"""<!-- CURATOR:BEGIN block=a zone=editorial provenance=OLD -->
stale body
<!-- CURATOR:END block=a -->
"""
    new = b"""<!-- CURATOR:BEGIN block=a zone=editorial provenance=NEW -->
refreshed body
<!-- CURATOR:END block=a -->
"""
    got = merge_blocks(existing, new)
    assert "refreshed body" in got
    assert "stale body" not in got


def test_merge_editorial_without_provenance_uses_new():
    existing = "<!-- CURATOR:BEGIN block=a zone=editorial -->\nold\n<!-- CURATOR:END block=a -->"
    new = "<!-- CURATOR:BEGIN block=a zone=editorial -->\nnew\n<!-- CURATOR:END block=a -->"
    got = merge_blocks(existing, new)
    assert "new" in got
    assert "old" not in got


def test_merge_machine_always_overwritten():
    existing = b"""<!-- CURATOR:BEGIN block=t zone=machine provenance=h1 -->
| old | row |
<!-- CURATOR:END block=t -->
"""
    new = b"""<!-- CURATOR:BEGIN block=t zone=machine provenance=h1 -->
| new | row |
<!-- CURATOR:END block=t -->
"""
    got = merge_blocks(existing, new)
    assert "| new | row |" in got
    assert "| old |" not in got


def test_merge_new_block_not_in_existing_taken_verbatim():
    existing = b"""<!-- CURATOR:BEGIN block=a zone=editorial provenance=h-a -->
A body
<!-- CURATOR:END block=a -->
"""
    new = b"""<!-- CURATOR:BEGIN block=a zone=editorial provenance=h-a -->
A from new render (would be preserved as wiki has same)
<!-- CURATOR:END block=a -->
<!-- CURATOR:BEGIN block=b zone=editorial provenance=h-b -->
B is a brand-new block
<!-- CURATOR:END block=b -->
"""
    got = merge_blocks(existing, new)
    assert "A body" in got
    assert "B is a brand-new block" in got
    assert "A from new render" not in got


def test_merge_orphan_block_dropped():
    existing = b"""<!-- CURATOR:BEGIN block=a zone=editorial provenance=h-a -->
A
<!-- CURATOR:END block=a -->
<!-- CURATOR:BEGIN block=orphan zone=editorial provenance=h-o -->
removed from new spec
<!-- CURATOR:END block=orphan -->
"""
    new = b"""<!-- CURATOR:BEGIN block=a zone=editorial provenance=h-a -->
A from new
<!-- CURATOR:END block=a -->
"""
    got = merge_blocks(existing, new)
    assert "removed from new spec" not in got
    assert "block=orphan" not in got


def test_merge_prologue_and_epilogue_from_new():
    existing = b"""OLD PROLOGUE

<!-- CURATOR:BEGIN block=a zone=editorial provenance=h-a -->
A
<!-- CURATOR:END block=a -->

OLD EPILOGUE"""
    new = b"""NEW PROLOGUE

<!-- CURATOR:BEGIN block=a zone=editorial provenance=h-a -->
A new
<!-- CURATOR:END block=a -->

NEW EPILOGUE"""
    got = merge_blocks(existing, new)
    assert "NEW PROLOGUE" in got
    assert "NEW EPILOGUE" in got
    assert "OLD PROLOGUE" not in got
    assert "OLD EPILOGUE" not in got


def test_merge_is_idempotent_on_its_own_output():
    new = (
        "head\n<!-- CURATOR:BEGIN block=a zone=machine provenance=p -->\nx\n"
        "<!-- CURATOR:END block=a -->\nmid\n"
        "<!-- CURATOR:BEGIN block=b zone=editorial provenance=q -->\ny\n"
        "<!-- CURATOR:END block=b -->\ntail"
    )
    once = merge_blocks(None, new)
    assert merge_blocks(once, once) == merge_blocks(None, once)