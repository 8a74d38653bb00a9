"""Unit tests for graph construction from a project tree."""

from keygraph.graph.builder import build_graph, discover_documents
from keygraph.parsing.paths import normalize_path


def _p(config, rel):
    return normalize_path(config.project_root / rel)


class TestDiscoverDocuments:
    def test_walks_scan_roots_and_skips_ignored_dirs(self, make_project):
        config = make_project({
            "src/routes/+page.svelte": "",
            "src/lib/Card.svelte": "",
            "src/lib/util.ts": "",
            "src/node_modules/pkg/Hidden.svelte": "",
            "src/.svelte-kit/generated/Gen.svelte": "",
            "other/Outside.svelte": "",
        })

        names = [p.name for p in discover_documents(config)]

        assert sorted(names) == ["+page.svelte", "Card.svelte"]

    def test_missing_roots(self, make_project):
        config = make_project({})
        assert list(discover_documents(config)) == []


class TestBuildGraph:
    def test_edges(self, blog_project):
        graph = build_graph(blog_project.project_root, blog_project)

        layout = _p(blog_project, "src/routes/+layout.svelte")
        nav = _p(blog_project, "src/lib/Nav.svelte")
        counter = _p(blog_project, "src/lib/Counter.svelte")
        blog_page = _p(blog_project, "src/routes/blog/+page.svelte")

        assert graph.forward_edges(layout) == [nav]
        assert graph.reverse_edges(counter) == [blog_page]
        assert graph.document_count == 6
        assert graph.reference_count == 2

    def test_unresolvable_references_are_not_edges(self, make_project):
        config = make_project({
            "src/routes/+page.svelte": (
                "<script>\n"
                "  import Missing from './Missing.svelte';\n"
                "  import { onMount } from 'svelte';\n"
                "  import Escape from '../../../outside/Escape.svelte';\n"
                "</script>\n"
            ),
            "outside/Escape.svelte": "",
        })

        graph = build_graph(config.project_root, config)

        assert graph.reference_count == 0
        assert graph.document_count == 1

    def test_dynamic_import_edge(self, make_project):
        config = make_project({
            "src/routes/+page.svelte": "<script>const Lazy = import('$lib/Lazy.svelte');</script>",
            "src/lib/Lazy.svelte": "",
        })
        graph = build_graph(config.project_root, config)
        assert graph.has_reference(
            _p(config, "src/routes/+page.svelte"), _p(config, "src/lib/Lazy.svelte")
        )

    def test_fresh_graph_each_call(self, blog_project):
        first = build_graph(blog_project.project_root, blog_project)
        (blog_project.routes_dir / "blog" / "+page.svelte").write_text("<p>no imports</p>")
        second = build_graph(blog_project.project_root, blog_project)
        assert first.reference_count == 2
        assert second.reference_count == 1

    def test_loads_config_when_omitted(self, blog_project):
        graph = build_graph(blog_project.project_root)
        assert graph.document_count == 6
