"""Base mixin for deckhub TUI widgets."""


class DeckhubMixin:
    """Mixin for widgets that render remote-controlled content.

    Terminal output and device payloads are shown verbatim, so Textual's
    link detection stays off.
    """

    auto_links = False
