"""
Text-pattern parsing of Svelte component documents.

- keys: key name normalization and reserved-word handling
- paths: import resolution and path safety
- extractor: import and translation-key extraction

Import from the submodules directly; :mod:`keygraph.core.types` depends on
``keys`` and this package must not import back into ``core``.
"""
