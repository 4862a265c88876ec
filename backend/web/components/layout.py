"""
Layout component: wraps page content into a complete HTML document.
"""

from typing import Any, Dict, Optional

from .base import Component


class Layout(Component):
    """Main layout component that assembles the complete page"""

    def __init__(
        self,
        title: str,
        content: str,
        teacher: Optional[Dict[str, Any]] = None,
        show_header: bool = True,
    ):
        """
        Args:
            title: Page title (will be escaped)
            content: Main content HTML (pre-rendered components)
            teacher: `{username, email}` of the signed-in teacher, if any
            show_header: Whether to render the top bar
        """
        self.title = title
        self.content = content
        self.teacher = teacher
        self.show_header = show_header

    def render(self) -> str:
        header_html = self._render_header() if self.show_header else ""
        return f"""<!DOCTYPE html>
<html lang="id">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{self.escape(self.title)} - Laporan Ramadan</title>
    <link rel="stylesheet" href="/static/css/laporan.css?v=1">
    <script src="/static/js/laporan.js?v=1" defer></script>
</head>
<body>
    {header_html}
    <main id="main-content" class="main-content" role="main">
        {self.content}
    </main>
</body>
</html>"""

    def _render_header(self) -> str:
        account = ""
        if self.teacher:
            name = self.teacher.get("username") or self.teacher.get("email")
            account = f"""
        <div class="account">
            <span class="account-name">{self.escape(name)}</span>
            <button type="button" class="btn btn-link" data-action="logout">Keluar</button>
        </div>"""
        return f"""<header class="topbar" role="banner">
        <a class="brand" href="/laporan">Laporan Ramadan</a>{account}
    </header>"""
