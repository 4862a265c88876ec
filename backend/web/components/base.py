"""
Base component for server-rendered pages.

Pages are built from small Python classes instead of a template engine; every
interpolated value goes through `escape`.
"""

from typing import Any, Optional
import html


class Component:
    """Base class for all UI components."""

    def render(self) -> str:
        raise NotImplementedError("Subclasses must implement render()")

    @staticmethod
    def escape(text: Optional[Any]) -> str:
        """Escape HTML entities; `None` renders as an empty string."""
        return html.escape(str(text)) if text is not None else ""

    @staticmethod
    def classes(*args: str, **conditionals: bool) -> str:
        """Join CSS classes, adding each keyword class whose value is true.

        Example:
            >>> Component.classes("badge", muted=True, active=False)
            'badge muted'
        """
        result = list(args)
        result.extend(key for key, value in conditionals.items() if value)
        return " ".join(result)

    @staticmethod
    def attributes(**attrs: Any) -> str:
        """Build an HTML attribute string.

        Trailing underscores are dropped (`for_` -> `for`), other underscores
        become dashes, `True` renders a bare attribute and `False`/`None` skip it.
        """
        result = []
        for key, value in attrs.items():
            if key.endswith("_"):
                key = key[:-1]
            key = key.replace("_", "-")
            if value is True:
                result.append(key)
            elif value is False or value is None:
                continue
            else:
                result.append(f'{key}="{html.escape(str(value), quote=True)}"')
        return " ".join(result)
