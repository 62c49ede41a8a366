"""Search UI - view contract, controller and HTML rendering."""

from .controller import SearchController
from .html_view import HtmlSearchView, render_search_html
from .view import SearchView, ViewState


__all__ = ["HtmlSearchView", "SearchController", "SearchView", "ViewState", "render_search_html"]
