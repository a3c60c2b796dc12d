"""Aurion pages: endpoint paths, selectors and parsers, one module per page."""
