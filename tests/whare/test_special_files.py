from __future__ import annotations

import json

from whare.log import RunLogger
from whare.special_files import (
    MANIFEST_STRATEGY,
    REPLACE_STRATEGY,
    MergeStrategy,
    SpecialFileRegistry,
    default_registry,
)


def test_resolve_matches_manifest_by_base_name() -> None:
    registry = default_registry()

    assert registry.resolve("package.json") is MANIFEST_STRATEGY
    assert registry.resolve("apps/web/package.json") is MANIFEST_STRATEGY
    assert registry.resolve("apps/web/package.json.bak") is REPLACE_STRATEGY
    assert registry.resolve("tsconfig.json") is REPLACE_STRATEGY


def test_resolve_uses_first_registered_match() -> None:
    first = MergeStrategy(
        name="first", matches=lambda name: name.endswith(".md"), merge=lambda c, i, _l: "1"
    )
    second = MergeStrategy(
        name="second", matches=lambda name: name == "README.md", merge=lambda c, i, _l: "2"
    )
    registry = SpecialFileRegistry([first])
    registry.register(second)

    assert registry.resolve("docs/README.md") is first
    assert registry.strategies == (first, second)


def test_apply_returns_incoming_for_new_files(logger: RunLogger) -> None:
    registry = default_registry()
    incoming = json.dumps({"name": "template"}, indent=2).encode("utf-8")

    assert registry.apply("package.json", None, incoming, logger) == incoming


def test_apply_replaces_unmatched_files(logger: RunLogger) -> None:
    registry = default_registry()

    assert registry.apply("README.md", b"local", b"template", logger) == b"template"


def test_apply_replaces_binary_and_crlf_content_verbatim(logger: RunLogger) -> None:
    registry = default_registry()
    icon = b"\x00\x01\xff\xfe\x89P"
    crlf = b"line one\r\nline two\r\n"

    assert registry.apply("apps/web/favicon.ico", b"old", icon, logger) == icon
    assert registry.apply("scripts/run.bat", b"old\n", crlf, logger) == crlf


def test_apply_merges_manifests(logger: RunLogger) -> None:
    registry = default_registry()
    current = json.dumps({"name": "mine", "dependencies": {"a": "1"}}, indent=2)
    incoming = json.dumps({"name": "tmpl", "dependencies": {"b": "2"}}, indent=2)

    merged = registry.apply(
        "packages/ui/package.json", current.encode("utf-8"), incoming.encode("utf-8"), logger
    )

    assert json.loads(merged) == {"name": "mine", "dependencies": {"a": "1", "b": "2"}}


def test_apply_keeps_undecodable_manifest(logger: RunLogger) -> None:
    registry = default_registry()
    current = b'{"name": "mine"}\n'

    result = registry.apply("package.json", current, b"\xff\xfe{}", logger)

    assert result == current
    assert any("not UTF-8" in record.message for record in logger.records)
