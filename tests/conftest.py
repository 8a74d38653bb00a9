"""Shared fixtures: small SvelteKit project trees on disk."""

from pathlib import Path
from typing import Dict

import pytest

from keygraph.config import load_config

KEY_SOURCE = """\
const defaultTranslations = {
  hello: 'Hello',
  title: 'Title',
  'user-count': 'There are {{count}} users',
  nav: 'Navigation',
  footer: 'Footer',
  continue: 'Continue',
} as const;

export default defaultTranslations;
"""

I18N = "<script>\n  import * as t from '@i18n';\n</script>\n"


def write_tree(root: Path, files: Dict[str, str]) -> Dict[str, Path]:
    """Write ``relative path -> content`` under ``root``; return the absolute paths."""
    written = {}
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        written[rel] = path
    return written


@pytest.fixture
def make_project(tmp_path):
    """Factory writing a project tree and returning its resolved config."""

    def _make(files: Dict[str, str], **overrides):
        write_tree(tmp_path, files)
        return load_config(tmp_path, **overrides)

    return _make


@pytest.fixture
def blog_project(make_project):
    """
    A root layout with a nav component, a blog layout, and two pages.

        /            layout: nav (via Nav.svelte)   page: hello
        /blog        layout: title                  page: user-count (via Counter)
    """
    return make_project({
        "src/types/default-translations.ts": KEY_SOURCE,
        "src/lib/Nav.svelte": I18N + "<nav>{t.nav()}</nav>\n",
        "src/lib/Counter.svelte": I18N + "<p>{t['user-count']()}</p>\n",
        "src/routes/+layout.svelte": (
            "<script>\n  import Nav from '$lib/Nav.svelte';\n</script>\n<Nav />\n<slot />\n"
        ),
        "src/routes/+page.svelte": I18N + "<h1>{t.hello()}</h1>\n",
        "src/routes/blog/+layout.svelte": I18N + "<h2>{t.title()}</h2>\n<slot />\n",
        "src/routes/blog/+page.svelte": (
            "<script>\n  import Counter from '$lib/Counter.svelte';\n</script>\n<Counter />\n"
        ),
    })
