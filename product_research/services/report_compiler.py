# product_research/services/report_compiler.py

"""Compiles enrichment results into a shareable detail report."""

import logging
from datetime import datetime

from product_research.config.settings import Settings
from product_research.models.detail import D_ERROR, DetailRecord
from product_research.models.listing import (
    COL_NAME,
    COL_PLATFORM,
    COL_RANK,
    COL_URL,
    Platform,
    to_int,
)
from product_research.models.report import (
    CENTERED,
    ERROR,
    HEADING,
    LINK,
    RULE,
    TABLE,
    TITLE,
    ReportDocument,
    ReportEntry,
)
from product_research.storage.file_storage import FileStorage, StoredFile
from product_research.storage.pdf_exporter import render_pdf
from product_research.storage.record_store import RecordStore

logger = logging.getLogger("product_research.report")

NOT_FETCHED = "Details not fetched"


def _fmt_number(value: float | int) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def _price_text(detail: DetailRecord) -> str:
    if detail.price is None:
        return ""
    text = f"{_fmt_number(detail.price)} {detail.currency}".strip()
    notes: list[str] = []
    if detail.old_price is not None:
        notes.append(f"was {_fmt_number(detail.old_price)}")
    if detail.discount_pct is not None:
        notes.append(f"-{detail.discount_pct}%")
    if notes:
        text += f" ({', '.join(notes)})"
    return text


def _rating_text(detail: DetailRecord) -> str:
    if detail.rating is None:
        return ""
    return f"{detail.rating:g}/5 ({detail.review_count or 0} reviews)"


def detail_rows(detail: DetailRecord) -> list[tuple[str, str]]:
    """Key/value rows for every non-empty detail field, in report order."""
    rows = [
        ("Title", detail.title),
        ("Price", _price_text(detail)),
        ("Brand", detail.brand),
        ("SKU", detail.sku),
        ("Seller", detail.seller),
        ("Rating", _rating_text(detail)),
        ("Availability", detail.availability),
        ("Category", detail.category),
        ("Top reviews", "\n".join(detail.reviews)),
        ("Main image", detail.main_image),
        ("Variants", ", ".join(detail.variants)),
    ]
    return [(key, value) for key, value in rows if value]


def entries_from_store(
    store: RecordStore, platform: str | None = None,
) -> list[ReportEntry]:
    """Build report entries from persisted rows of one platform."""
    wanted = platform or Settings.ENRICH_PLATFORM
    entries: list[ReportEntry] = []
    for _row, values in store.data_rows():
        parsed = Platform.parse(values.get(COL_PLATFORM))
        if parsed is None or parsed.value != wanted:
            continue
        detail = DetailRecord.from_columns(values)
        error = str(values.get(D_ERROR) or "") or None
        entries.append(ReportEntry(
            rank=to_int(values.get(COL_RANK)),
            title=str(values.get(COL_NAME) or ""),
            url=str(values.get(COL_URL) or ""),
            detail=detail if detail.has_data else None,
            error=error,
        ))
    return entries


class ReportCompiler:
    """Lays out entries as a document, exports it to PDF and stores it."""

    def __init__(self, storage: FileStorage | None = None) -> None:
        self._storage = storage

    @property
    def storage(self) -> FileStorage:
        if self._storage is None:
            self._storage = FileStorage()
        return self._storage

    def build(
        self,
        keyword: str,
        entries: list[ReportEntry],
        generated_at: datetime | None = None,
    ) -> ReportDocument:
        """Assemble the document for *entries* in the given order."""
        generated_at = generated_at or datetime.now()
        stamp = generated_at.strftime("%Y%m%d_%H%M%S")
        doc = ReportDocument(
            name=f"detail_report_{keyword}_{stamp}",
            title=f"Product detail report: {keyword}",
        )
        doc.add(TITLE, doc.title)
        doc.add(
            CENTERED,
            f"Generated {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        )
        doc.add(CENTERED, f"Items analysed: {len(entries)}")
        doc.add(RULE)

        for i, entry in enumerate(entries):
            rank = entry.rank if entry.rank is not None else "-"
            doc.add(HEADING, f"{rank}: {entry.title}")
            doc.add(LINK, entry.url)
            if entry.detail is not None and entry.detail.has_data:
                doc.add(TABLE, rows=detail_rows(entry.detail))
            elif entry.error:
                doc.add(ERROR, entry.error)
            else:
                doc.add(ERROR, NOT_FETCHED)
            if i < len(entries) - 1:
                doc.add(RULE)
        return doc

    def compile(
        self, keyword: str, entries: list[ReportEntry],
    ) -> StoredFile:
        """Render the report to PDF, store it and return the stored file.

        Only the exported PDF is kept; the document object is discarded.
        """
        doc = self.build(keyword, entries)
        data = render_pdf(doc)
        stored = self.storage.save(f"{doc.name}.pdf", data)
        logger.info(
            "Report for '%s' with %d items stored at %s",
            keyword,
            len(entries),
            stored.path,
        )
        return stored
