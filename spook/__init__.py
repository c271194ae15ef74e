"""Spook static site generator.

This package provides a minimalist static site generator that reads markdown content
with TOML front matter and renders it through Jinja2 theme templates.
The result is either written to a publish directory or served live over HTTP,
re-parsing the content on every request.

The main entry point is the CLI module, which provides commands for scaffolding
sites, themes, pages and posts, building the site, and running the web server.

Pipeline:
- extractors: front matter splitting and metadata decoding.
- content: parsing post and page directories into records.
- collections: grouping, sorting and pagination.
- templates: rendering records through the theme.
- build / server: writing to disk or serving over HTTP.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
