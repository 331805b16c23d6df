"""Load Markdown books, run preprocessors over their chapters and render them."""

__version__ = "0.5.0"