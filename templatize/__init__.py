"""templatize: convert working projects into templates and restore them."""

__version__ = "0.1.0"
