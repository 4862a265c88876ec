"""Per-rombel summary table for the teacher landing page."""

from typing import Any, Dict, List

from .base import Component


class SummaryTable(Component):
    def __init__(self, rows: List[Dict[str, Any]], tanggal: str):
        self.rows = rows
        self.tanggal = tanggal

    def render(self) -> str:
        if not self.rows:
            return '<p class="empty-state">Belum ada data siswa.</p>'
        body = "\n".join(self._render_row(row) for row in self.rows)
        return f"""<table class="summary-table">
    <caption>Ringkasan tanggal {self.escape(self.tanggal)}</caption>
    <thead>
        <tr>
            <th scope="col">Rombel</th>
            <th scope="col">Siswa</th>
            <th scope="col">Laporan</th>
            <th scope="col">Puasa penuh (%)</th>
            <th scope="col">Sholat (%)</th>
            <th scope="col">Tadarus (%)</th>
        </tr>
    </thead>
    <tbody>
{body}
    </tbody>
</table>"""

    def _render_row(self, row: Dict[str, Any]) -> str:
        cells = [
            row.get("total_siswa"),
            row.get("total_laporan"),
            row.get("avg_puasa_penuh"),
            row.get("avg_sholat"),
            row.get("avg_tadarus"),
        ]
        tds = "".join(f"<td>{self.escape(value)}</td>" for value in cells)
        row_class = self.classes("summary-row", empty=not row.get("total_laporan"))
        return f'        <tr class="{row_class}"><th scope="row">{self.escape(row.get("rombel"))}</th>{tds}</tr>'
