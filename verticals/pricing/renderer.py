"""Template engine renderer for the pricing vertical.

Turns simulation previews, apply reports and resale tables into markdown.
Deterministic output, so previews can be diffed and asserted on.
"""

from decimal import Decimal
from typing import Any, Dict

from core.engine.template_engine import (
    fmt_int,
    fmt_money,
    fmt_pct,
    md_cell,
    register_renderer,
    render_generic,
)

MAX_PREVIEW_ROWS = 200


def render_pricing(view: str, result: Dict[str, Any], options: Dict[str, Any]) -> str:
    """Render pricing results into markdown."""
    if "error" in result:
        return f"**Error:** {result['error']}"

    currency = options.get("currency", "R$")
    max_rows = options.get("max_rows", MAX_PREVIEW_ROWS)

    # -- Simulation preview --
    if view == "simulation":
        summary = result.get("summary", {})
        lines = ["## Price Simulation\n"]
        lines.append(f"- **Products evaluated:** {fmt_int(summary.get('total'))}")
        lines.append(f"- **Will change:** {fmt_int(summary.get('changed'))}")
        lines.append(f"- **Unchanged:** {fmt_int(summary.get('unchanged'))}")

        changed = [r for r in result.get("results", []) if r["status"] == "changed"]
        if not changed:
            lines.append("\nNo price changes. Adjust the rules and simulate again.")
            return "\n".join(lines)

        lines.append("\n| Product | Group | Current | New | Rule |")
        lines.append("|---------|-------|---------|-----|------|")
        for r in changed[:max_rows]:
            lines.append(
                f"| {md_cell(r['product_name'])} | {md_cell(r['group_name'], 25)} | "
                f"{fmt_money(_num(r['old_price']), currency)} | "
                f"{fmt_money(_num(r['new_price']), currency)} | "
                f"{md_cell(r['matched_rule_name'], 30)} |"
            )
        if len(changed) > max_rows:
            lines.append(f"\n_{len(changed) - max_rows} more changed item(s) not shown._")
        return "\n".join(lines)

    # -- Apply report --
    if view == "apply":
        lines = ["## Price Update Result\n"]
        if result.get("cancelled") and not result.get("succeeded"):
            lines.append("Apply was cancelled. No prices were changed.")
            return "\n".join(lines)

        lines.append(f"- **Updated:** {fmt_int(result['succeeded'])} of {fmt_int(result['total'])}")
        failures = result.get("failures", [])
        if failures:
            lines.append(f"\n**Failed ({len(failures)}):**")
            for f in failures:
                lines.append(f"- {f['product_id']}: {md_cell(f['reason'], 80)}")
        if result.get("cancelled"):
            lines.append("\nStopped before all items were sent; applied prices were kept.")
        return "\n".join(lines)

    # -- Resale table --
    if view == "resale":
        rows = result.get("data", [])
        lines = [f"## Resale Prices (+{fmt_pct(_num(result['markup_pct']))})\n"]
        if not rows:
            lines.append("No products.")
            return "\n".join(lines)
        lines.append("| Product | Group | Base | Resale |")
        lines.append("|---------|-------|------|--------|")
        for row in rows[:max_rows]:
            lines.append(
                f"| {md_cell(row['name'])} | {md_cell(row['group_name'], 25)} | "
                f"{fmt_money(_num(row['base_price']), currency)} | "
                f"{fmt_money(_num(row['resale_price']), currency)} |"
            )
        lines.append(f"\nTotal items: {fmt_int(len(rows))}")
        return "\n".join(lines)

    return render_generic(view, result)


def _num(value):
    """Payloads carry money as strings; the formatters need numbers."""
    return value if not isinstance(value, str) else Decimal(value)


# Auto-register on import
register_renderer("pricing", render_pricing)
