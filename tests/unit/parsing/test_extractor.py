"""Unit tests for reference and key extraction."""

from keygraph.parsing.extractor import (
    extract_import_specifiers,
    extract_key_usage,
    extract_references,
    has_translation_import,
    has_translation_usage,
    is_in_comment,
    translation_imports,
)
from keygraph.parsing.paths import ImportResolver
from tests.conftest import write_tree


class TestImportSpecifiers:
    def test_static_import_forms(self):
        text = """
<script>
  import Card from './Card.svelte';
  import { Badge, Chip as C } from '$lib/ui';
  import * as Widgets from "./widgets";
  import type Props from './types';
</script>
"""
        assert extract_import_specifiers(text) == [
            "./Card.svelte", "./types", "$lib/ui", "./widgets",
        ]

    def test_dynamic_imports(self):
        text = """
<script>
  const Lazy = import('./Lazy.svelte');
  const mod = await import("./Heavy.svelte");
  const tpl = await import(`./Template.svelte`);
  const computed = await import(`./${name}.svelte`);
</script>
"""
        assert extract_import_specifiers(text) == [
            "./Lazy.svelte", "./Heavy.svelte", "./Template.svelte",
        ]

    def test_dynamic_alias_imports(self):
        text = """
<script>
  const A = import('$lib/A.svelte');
  const B = await import("$lib/B.svelte");
  const C = await import(`$lib/C.svelte`);
  const D = await import(`$lib/${name}.svelte`);
</script>
"""
        assert extract_import_specifiers(text) == [
            "$lib/A.svelte", "$lib/B.svelte", "$lib/C.svelte",
        ]

    def test_commented_imports_are_ignored(self):
        text = """
<script>
  // import Old from './Old.svelte';
  /* import Older from './Older.svelte'; */
  import Current from './Current.svelte';
</script>
<!-- import Legacy from './Legacy.svelte' -->
"""
        assert extract_import_specifiers(text) == ["./Current.svelte"]

    def test_duplicates_collapse(self):
        text = "import A from './A.svelte';\nconst B = import('./A.svelte');\n"
        assert extract_import_specifiers(text) == ["./A.svelte"]


class TestExtractReferences:
    def test_only_existing_components(self, tmp_path):
        paths = write_tree(tmp_path, {
            "src/lib/Card.svelte": "",
            "src/lib/Page.svelte": (
                "import Card from './Card.svelte';\n"
                "import Gone from './Gone.svelte';\n"
                "import { writable } from 'svelte/store';\n"
            ),
        })
        resolver = ImportResolver(tmp_path, [tmp_path / "src"], {"$lib": "src/lib"})
        page = paths["src/lib/Page.svelte"]

        refs = extract_references(page.read_text(), page, resolver)

        assert [r.name for r in refs] == ["Card.svelte"]


class TestCommentDetection:
    TEXT = (
        "<script>\n"
        "  // t.lineComment()\n"
        "  /* t.blockComment() */\n"
        "  const url = 'https://example.com'; t.afterUrl();\n"
        "</script>\n"
        "<!-- <p>{t.htmlComment()}</p> -->\n"
        "{/* t.svelteComment() */}\n"
        "<p>{t.visible()}</p>\n"
    )

    def _pos(self, needle):
        return self.TEXT.index(needle)

    def test_comment_spans(self):
        assert is_in_comment(self.TEXT, self._pos("t.lineComment"))
        assert is_in_comment(self.TEXT, self._pos("t.blockComment"))
        assert is_in_comment(self.TEXT, self._pos("t.htmlComment"))
        assert is_in_comment(self.TEXT, self._pos("t.svelteComment"))

    def test_live_code(self):
        assert not is_in_comment(self.TEXT, self._pos("t.visible"))

    def test_url_is_not_a_comment(self):
        assert not is_in_comment(self.TEXT, self._pos("t.afterUrl"))

    def test_only_uncommented_keys_are_extracted(self):
        usage = extract_key_usage(self.TEXT)
        assert usage.keys == {"visible", "afterUrl"}


class TestTranslationImports:
    def test_named_and_aliased(self):
        handles, named = translation_imports(
            "import { hello, bye as b } from '@i18n';"
        )
        assert handles == set()
        assert named == {"hello": "hello", "b": "bye"}

    def test_namespace(self):
        handles, named = translation_imports("import * as i18n from '@i18n';")
        assert handles == {"i18n"}
        assert named == {}

    def test_default(self):
        handles, _ = translation_imports("import tr from \"@i18n\";")
        assert handles == {"tr"}

    def test_other_modules_ignored(self):
        assert not has_translation_import("import { hello } from './hello';")

    def test_custom_module(self):
        assert has_translation_import("import * as t from '$lib/i18n';", modules={"$lib/i18n"})


class TestExtractKeyUsage:
    def test_handle_calls(self):
        usage = extract_key_usage("<p>{t.hello()}</p><p>{t['user-count']({ count })}</p>")
        assert usage.keys == {"hello", "user-count"}
        assert "userCount" in usage

    def test_reserved_accessor(self):
        usage = extract_key_usage("<button>{t.continueFn()}</button>")
        assert usage.keys == {"continue"}
        assert usage.resolve({"continue": "Continue"}) == ["continue"]

    def test_loaded_translations_accessor(self):
        text = (
            "<p>{data._loadedTranslations.hello}</p>\n"
            "<p>{data._loadedTranslations['user-count']}</p>\n"
        )
        assert extract_key_usage(text).keys == {"hello", "user-count"}

    def test_namespace_handle(self):
        text = "<script>import * as i18n from '@i18n';</script><h1>{i18n.title()}</h1>"
        assert "title" in extract_key_usage(text).keys

    def test_named_imports_are_confident(self):
        text = (
            "<script>\n"
            "  import { hello, bye as farewell } from '@i18n';\n"
            "  import { formatDate } from '$lib/dates';\n"
            "</script>\n"
            "<p>{hello()} {farewell()} {formatDate(now)}</p>\n"
        )
        usage = extract_key_usage(text)
        assert {"hello", "bye"} <= usage.keys
        assert usage.inferred == {"formatDate"}

    def test_inferred_keys_need_table_confirmation(self):
        text = (
            "<script>import { hello } from '@i18n';</script>\n"
            "<p>{hello()} {footer()} {formatDate(now)}</p>\n"
        )
        usage = extract_key_usage(text)
        table = {"hello": "Hello", "footer": "Footer"}
        assert usage.resolve(table) == ["footer", "hello"]

    def test_no_fallback_without_translation_import(self):
        usage = extract_key_usage("<p>{hello()}</p>")
        assert not usage

    def test_fallback_can_be_forced(self):
        usage = extract_key_usage("<p>{hello()}</p>", has_direct_translation_import=True)
        assert usage.inferred == {"hello"}

    def test_keywords_are_not_keys(self):
        text = (
            "<script>import { hello } from '@i18n';\n"
            "if (ready) { hello(); }\n"
            "</script>"
        )
        assert usage_keys(text) == {"hello"}

    def test_property_calls_are_not_bare_calls(self):
        text = "<script>import { hello } from '@i18n';\nitems.map(x => x);</script>"
        assert usage_keys(text) == set()


def usage_keys(text):
    return extract_key_usage(text).keys


class TestHasTranslationUsage:
    def test_import(self):
        assert has_translation_usage("<script>import { t } from '@i18n';</script>")

    def test_accessor(self):
        assert has_translation_usage("<p>{data._loadedTranslations.hello}</p>")

    def test_plain_component(self):
        assert not has_translation_usage("<p>static</p>")

    def test_commented_usage_does_not_count(self):
        assert not has_translation_usage("<!-- {data._loadedTranslations.hello} -->")
