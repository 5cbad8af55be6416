# product_research/models/report.py

"""Renderer-agnostic report document model."""

from dataclasses import dataclass, field
from typing import Any

from product_research.models.detail import DetailRecord

# Block kinds understood by the PDF exporter
TITLE = "title"
CENTERED = "centered"
HEADING = "heading"
LINK = "link"
TABLE = "table"
ERROR = "error"
RULE = "rule"


@dataclass
class Block:
    """One element of a report document."""

    kind: str
    text: str = ""
    rows: list[tuple[str, str]] = field(
        default_factory=lambda: list[tuple[str, str]]()
    )


@dataclass
class ReportDocument:
    """Editable report content, discarded once exported."""

    name: str
    title: str
    blocks: list[Block] = field(default_factory=lambda: list[Block]())

    def add(self, kind: str, text: str = "", **kwargs: Any) -> Block:
        block = Block(kind=kind, text=text, **kwargs)
        self.blocks.append(block)
        return block

    def kinds(self) -> list[str]:
        return [b.kind for b in self.blocks]


@dataclass
class ReportEntry:
    """Identity of one analysed listing plus its details or error."""

    rank: int | None
    title: str
    url: str
    detail: DetailRecord | None = None
    error: str | None = None
