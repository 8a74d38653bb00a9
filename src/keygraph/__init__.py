"""
keygraph: translation key usage tracking for SvelteKit route trees.

Builds a reverse dependency graph over Svelte components, computes the
translation keys each route reaches, rolls layout keys down the route tree,
and keeps a generated key manifest in every route's server companion.
"""

__version__ = "0.1.0"
