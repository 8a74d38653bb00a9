"""Unit tests for transitive key scanning."""

from unittest.mock import patch

import pytest

from keygraph.analysis import usage as usage_module
from keygraph.analysis.usage import (
    document_has_translation_usage,
    document_keys,
    find_users,
    scan_entries,
    scan_transitive_keys,
)
from keygraph.core.graph import DependencyGraph
from keygraph.graph.builder import build_graph
from keygraph.parsing.paths import normalize_path


@pytest.fixture
def chain(make_project):
    """page -> Outer -> Inner, each with its own key."""
    config = make_project({
        "src/routes/+page.svelte": (
            "<script>import Outer from '$lib/Outer.svelte';</script>\n<h1>{t.hello()}</h1><Outer />\n"
        ),
        "src/lib/Outer.svelte": (
            "<script>import Inner from './Inner.svelte';</script>\n<p>{t.title()}</p><Inner />\n"
        ),
        "src/lib/Inner.svelte": "<span>{t.footer()}</span>\n",
    })
    return config, build_graph(config.project_root, config)


def _p(config, rel):
    return normalize_path(config.project_root / rel)


class TestDocumentKeys:
    def test_reads_one_document(self, chain):
        config, _ = chain
        assert document_keys(_p(config, "src/lib/Outer.svelte")).keys == {"title"}

    def test_missing_document_contributes_nothing(self, tmp_path):
        assert not document_keys(tmp_path / "Gone.svelte")


class TestScanTransitiveKeys:
    def test_follows_references(self, chain):
        config, graph = chain
        usage = scan_transitive_keys(_p(config, "src/routes/+page.svelte"), graph)
        assert usage.keys == {"hello", "title", "footer"}

    def test_starting_below_the_entry(self, chain):
        config, graph = chain
        usage = scan_transitive_keys(_p(config, "src/lib/Outer.svelte"), graph)
        assert usage.keys == {"title", "footer"}

    def test_lazy_loaded_component(self, make_project):
        config = make_project({
            "src/routes/+page.svelte": (
                "<script>const Lazy = await import('$lib/Lazy.svelte');</script>\n"
            ),
            "src/lib/Lazy.svelte": "<p>{t.hello()}</p>\n",
        })
        graph = build_graph(config.project_root, config)

        usage = scan_transitive_keys(_p(config, "src/routes/+page.svelte"), graph)

        assert "hello" in usage.keys

    def test_depth_limit(self, chain):
        config, graph = chain
        usage = scan_transitive_keys(_p(config, "src/routes/+page.svelte"), graph, max_depth=2)
        assert usage.keys == {"hello", "title"}

    def test_shared_visited_set(self, chain):
        config, graph = chain
        visited = {_p(config, "src/lib/Outer.svelte")}
        usage = scan_transitive_keys(_p(config, "src/routes/+page.svelte"), graph, visited)
        assert usage.keys == {"hello"}
        assert _p(config, "src/routes/+page.svelte") in visited

    def test_cycle_visits_each_document_once(self, make_project):
        config = make_project({
            "src/lib/A.svelte": "<script>import B from './B.svelte';</script>{t.hello()}",
            "src/lib/B.svelte": "<script>import A from './A.svelte';</script>{t.title()}",
        })
        graph = build_graph(config.project_root, config)
        a = _p(config, "src/lib/A.svelte")

        with patch.object(usage_module, "document_keys", wraps=usage_module.document_keys) as spy:
            usage = scan_transitive_keys(a, graph)

        assert usage.keys == {"hello", "title"}
        assert spy.call_count == 2

    def test_placeholder_for_deleted_document(self, tmp_path):
        entry = tmp_path / "+page.svelte"
        entry.write_text("{t.hello()}")
        graph = DependencyGraph()
        graph.add_reference(str(entry), str(tmp_path / "Deleted.svelte"))

        assert scan_transitive_keys(entry, graph).keys == {"hello"}


class TestScanEntries:
    def test_entries_do_not_share_visited_state(self, make_project):
        config = make_project({
            "src/routes/+page.svelte": "<script>import S from '$lib/Shared.svelte';</script>",
            "src/routes/about/+page.svelte": "<script>import S from '$lib/Shared.svelte';</script>",
            "src/lib/Shared.svelte": "{t.footer()}",
        })
        graph = build_graph(config.project_root, config)
        root_page = _p(config, "src/routes/+page.svelte")
        about_page = _p(config, "src/routes/about/+page.svelte")

        result = scan_entries([root_page, about_page], graph)

        assert result[root_page].keys == {"footer"}
        assert result[about_page].keys == {"footer"}


class TestUsers:
    def test_find_users(self, chain):
        config, graph = chain
        assert find_users(_p(config, "src/lib/Inner.svelte"), graph) == {
            _p(config, "src/lib/Outer.svelte"),
            _p(config, "src/routes/+page.svelte"),
        }

    def test_document_has_translation_usage(self, make_project):
        config = make_project({
            "src/lib/Uses.svelte": "<script>import * as t from '@i18n';</script>",
            "src/lib/Plain.svelte": "<p>{t.hello()}</p>",
        })
        assert document_has_translation_usage(_p(config, "src/lib/Uses.svelte"))
        # Handle calls alone do not count as direct translation usage
        assert not document_has_translation_usage(_p(config, "src/lib/Plain.svelte"))
        assert not document_has_translation_usage(config.project_root / "missing.svelte")
