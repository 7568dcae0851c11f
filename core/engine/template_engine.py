"""Template Engine: formats structured results into markdown.

Each vertical registers one renderer function; the engine dispatches on the
vertical name and falls back to a generic key/value dump for anything
unregistered. Output is deterministic, which keeps previews diff-able and
easy to assert on in tests.
"""

from decimal import Decimal
from typing import Any, Callable, Dict, Optional


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def fmt_money(value: Decimal | float | int | None, currency: str = "R$") -> str:
    """Format a number as currency, e.g. R$1,234.50."""
    if value is None:
        return "N/A"
    if isinstance(value, Decimal) and not value.is_finite():
        return "N/A"
    return f"{currency}{value:,.2f}"


def fmt_pct(value: Decimal | float | None, signed: bool = False) -> str:
    """Format a number as percentage (+10.0% when signed)."""
    if value is None:
        return "N/A"
    return f"{value:+.1f}%" if signed else f"{value:.1f}%"


def fmt_int(value: int | None) -> str:
    """Format an integer with comma separators."""
    if value is None:
        return "N/A"
    return f"{value:,}"


def md_cell(value: Any, width: int = 40) -> str:
    """Make a value safe for a markdown table cell."""
    text = "" if value is None else str(value)
    return text.replace("|", "/").replace("\n", " ")[:width]


# ---------------------------------------------------------------------------
# Generic fallback renderer
# ---------------------------------------------------------------------------

def render_generic(view: str, result: Dict[str, Any]) -> str:
    """Readable markdown summary of any dict result."""
    if "error" in result:
        return f"**Error:** {result['error']}"

    lines = [f"## {view}\n"]
    for key, value in result.items():
        if key.startswith("_"):
            continue
        if isinstance(value, list):
            lines.append(f"**{key}:** {len(value)} items")
        elif isinstance(value, dict):
            summary = ", ".join(f"{k}={v}" for k, v in list(value.items())[:4])
            lines.append(f"**{key}:** {summary}")
        else:
            lines.append(f"**{key}:** {value}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Renderer type and registry
# ---------------------------------------------------------------------------

VerticalRenderer = Callable[[str, Dict[str, Any], Dict[str, Any]], str]

_VERTICAL_RENDERERS: Dict[str, VerticalRenderer] = {}


def register_renderer(vertical: str, renderer: VerticalRenderer) -> None:
    """Register a vertical-specific renderer.

    Example::

        def render_pricing(view, result, options):
            if view == "simulation":
                ...
            return render_generic(view, result)

        register_renderer("pricing", render_pricing)
    """
    _VERTICAL_RENDERERS[vertical] = renderer


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class TemplateEngine:
    """Formats structured results into markdown.

    Usage::

        markdown = TemplateEngine.render("simulation", preview, vertical="pricing")
    """

    @staticmethod
    def render(
        view: str,
        result: Dict[str, Any],
        vertical: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Render `result` with the vertical's renderer, or the generic one."""
        renderer = _VERTICAL_RENDERERS.get(vertical)
        if renderer is None:
            return render_generic(view, result)
        return renderer(view, result, options or {})

    @staticmethod
    def list_verticals() -> list[str]:
        """Return list of verticals with registered renderers."""
        return list(_VERTICAL_RENDERERS.keys())
