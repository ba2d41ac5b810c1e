"""Diagnostic breakdown of a built context window.

The context manager records what each stage spent in a
:class:`ContextBreakdown`; :class:`DiagnosticReporter` renders it as a
human-readable report. The text layout is not a stable interface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..config import CompressionStrategy

BAR_WIDTH = 40
RULE_WIDTH = 60


@dataclass(frozen=True)
class ItemUsage:
    """Token cost of one entry or message."""

    label: str
    tokens: int
    is_summary: bool = False


@dataclass(frozen=True)
class StageUsage:
    """Token usage of one stage against its budget."""

    name: str
    tokens: int
    budget: int
    items: List[ItemUsage] = field(default_factory=list)

    @property
    def within_budget(self) -> bool:
        return self.tokens <= self.budget

    @property
    def percent_of_budget(self) -> float:
        if self.budget == 0:
            return 0.0 if self.tokens == 0 else 100.0
        return self.tokens / self.budget * 100


@dataclass(frozen=True)
class ContextBreakdown:
    """Structured per-stage usage for one ``build_context`` call."""

    system: StageUsage
    knowledge: StageUsage
    conversation: StageUsage
    memory: Optional[StageUsage]
    strategy: CompressionStrategy
    max_tokens: int
    safety_margin: int
    total_tokens: int
    original_message_count: int
    dropped_count: int = 0
    dropped_tokens: int = 0
    summarized_count: int = 0
    forced_count: int = 0
    recompressed: bool = False
    overflow: bool = False

    @property
    def available(self) -> int:
        return self.max_tokens - self.safety_margin

    @property
    def remaining(self) -> int:
        return self.available - self.total_tokens

    @property
    def stages(self) -> List[StageUsage]:
        stages = [self.system]
        if self.memory is not None:
            stages.append(self.memory)
        stages.extend([self.knowledge, self.conversation])
        return stages


def _mark(ok: bool) -> str:
    return "✓" if ok else "✗"


def _preview(text: str, width: int) -> str:
    flat = text.replace("\n", " ")
    if len(flat) <= width:
        return flat
    return flat[:width] + "..."


class DiagnosticReporter:
    """Formats a :class:`ContextBreakdown` as a multi-section text report."""

    def __init__(self, title_width: int = 40, message_width: int = 50):
        self.title_width = title_width
        self.message_width = message_width

    def usage_bar(self, used: int, maximum: int, width: int = BAR_WIDTH) -> str:
        """Render ``used / maximum`` as a bar of ``width`` cells."""
        ratio = used / maximum if maximum > 0 else 1.0
        filled = max(0, min(width, int(ratio * width)))
        return "█" * filled + "░" * (width - filled)

    def _stage_lines(self, number: int, stage: StageUsage, unit: str) -> List[str]:
        lines = [f"{number}. {stage.name}: {stage.tokens} tokens"]
        if unit:
            lines[0] += f" ({len(stage.items)} {unit})"
        lines.append(f"   Budget: {stage.budget} tokens")
        lines.append(f"   Status: {_mark(stage.within_budget)}")
        return lines

    def format(self, breakdown: ContextBreakdown) -> str:
        """Render the report."""
        lines: List[str] = ["=" * RULE_WIDTH, "TOKEN BREAKDOWN FOR THIS EXCHANGE", "=" * RULE_WIDTH]
        number = 1

        lines.append("")
        lines.extend(self._stage_lines(number, breakdown.system, ""))

        if breakdown.memory is not None:
            number += 1
            lines.append("")
            lines.extend(self._stage_lines(number, breakdown.memory, "selected"))
            if not breakdown.memory.items:
                lines.append("   No memories selected")
            for idx, item in enumerate(breakdown.memory.items, start=1):
                label = _preview(item.label, self.message_width)
                lines.append(f'   Memory {idx}: "{label}" = {item.tokens} tokens')

        number += 1
        lines.append("")
        lines.extend(self._stage_lines(number, breakdown.knowledge, "selected"))
        if not breakdown.knowledge.items:
            lines.append("   No relevant knowledge entries found")
        for idx, item in enumerate(breakdown.knowledge.items, start=1):
            label = _preview(item.label, self.title_width)
            lines.append(f'   Entry {idx}: "{label}" = {item.tokens} tokens')

        number += 1
        lines.append("")
        lines.extend(self._stage_lines(number, breakdown.conversation, "messages"))
        lines.append(f"   Strategy: {breakdown.strategy.value}")
        for idx, item in enumerate(breakdown.conversation.items, start=1):
            label = item.label.replace("\n", " ") if item.is_summary else _preview(
                item.label, self.message_width
            )
            lines.append(f'   Msg {idx}: "{label}" = {item.tokens} tokens')

        if breakdown.summarized_count:
            kept = breakdown.original_message_count - breakdown.summarized_count
            lines.append("")
            lines.append(
                f"   SUMMARIZED: {breakdown.summarized_count} old messages compressed into summary"
            )
            lines.append(f"   KEPT INTACT: {kept} recent messages")
        elif breakdown.dropped_count:
            lines.append("")
            lines.append(
                f"   PRUNED: {breakdown.dropped_count} old messages "
                f"({breakdown.dropped_tokens} tokens removed)"
            )
        if breakdown.forced_count:
            lines.append(
                f"   FORCED: {breakdown.forced_count} recent messages kept past the budget"
            )
        if breakdown.recompressed:
            lines.append("   Aggressive recompression applied")

        number += 1
        lines.append("")
        lines.append(f"{number}. Summary:")
        for stage in breakdown.stages:
            label = f"{stage.name.split()[0]}:"
            lines.append(
                f"   {label:<14}{stage.tokens:>4} tokens "
                f"({stage.percent_of_budget:.1f}% of {stage.budget})"
            )
        lines.append("   " + "─" * 30)
        lines.append(f"   {'TOTAL:':<14}{breakdown.total_tokens:>4} / {breakdown.max_tokens} tokens")
        lines.append(f"   {'Available:':<14}{breakdown.remaining:>4} tokens remaining")
        lines.append(f"   Safety margin: {breakdown.safety_margin} tokens")

        percentage = (
            breakdown.total_tokens / breakdown.max_tokens * 100 if breakdown.max_tokens else 0.0
        )
        lines.append("")
        lines.append(
            f"   Usage: [{self.usage_bar(breakdown.total_tokens, breakdown.max_tokens)}] "
            f"{percentage:.1f}%"
        )

        if breakdown.overflow:
            lines.append("")
            lines.append("   WARNING: Context exceeds safe limit!")

        lines.append("=" * RULE_WIDTH)
        return "\n" + "\n".join(lines) + "\n"
