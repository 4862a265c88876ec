# Laporan Ramadan component system
# Pure Python components for escaped HTML generation

from .base import Component
from .layout import Layout
from .login_form import LoginForm
from .summary_table import SummaryTable

__all__ = [
    "Component",
    "Layout",
    "LoginForm",
    "SummaryTable",
]
