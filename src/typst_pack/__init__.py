"""
typst-pack: Bundle Typst template packages for publication.

Copies a package source tree into ``<output_root>/<name>/<version>/``:
- Relative self-imports are rewritten to ``@preview/<name>:<version>``
- ``#:schema`` lines are stripped from ``typst.toml``
- An optional template entrypoint is compiled (and thumbnailed) first
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
