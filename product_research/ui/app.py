# product_research/ui/app.py

"""Terminal UI for the product_research pipeline."""

import asyncio
import logging
import webbrowser
from collections.abc import Callable
from typing import Any, cast

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import (
    Button,
    Checkbox,
    DataTable,
    Footer,
    Header,
    Input,
    Static,
)

from product_research.config.settings import Settings
from product_research.models.detail import D_ERROR, D_FETCHED_AT
from product_research.models.listing import COL_CAPTURE, ProductListing
from product_research.services.pipeline import ResearchPipeline
from product_research.storage.sheet_db import SheetDB

logger = logging.getLogger("product_research.ui")

PipelineFactory = Callable[..., ResearchPipeline]

# (checkbox id, label, default)
_STAGE_TOGGLES = [
    ("check_capture", "Capture pages", True),
    ("check_enrich", "Fetch details", True),
    ("check_report", "Build report", True),
    ("check_persist", "Keep batch", True),
]


def _capture_cell(value: Any) -> Text:
    if not value:
        return Text("")
    if value == Settings.CAPTURE_FAILURE:
        return Text("SKIP", style="red")
    return Text("✓", style="green")


def _detail_cell(row: dict[str, Any]) -> Text:
    if row.get(D_ERROR):
        return Text("ERR", style="red")
    if row.get(D_FETCHED_AT):
        return Text("✓", style="green")
    return Text("")


class ResearchApp(App[object]):
    """Keyword in, batch table out; stages run off the UI thread."""

    CSS_PATH = "styles.css"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("e", "export", "Export CSV"),
        Binding("c", "copy_url", "Copy URL"),
    ]

    def __init__(self, pipeline_factory: PipelineFactory | None = None) -> None:
        super().__init__()
        self.pipeline_factory = pipeline_factory or ResearchPipeline
        self.pipeline: ResearchPipeline | None = None
        self.workbook: SheetDB | None = None
        self.batch_name: str = ""
        # (listing, raw row) pairs of the last batch, in table order
        self.rows: list[tuple[ProductListing, dict[str, Any]]] = []
        self.running = False

    def compose(self) -> ComposeResult:
        """Build the widget tree for the TUI."""
        source_names = ", ".join(
            s["label"] for s in Settings.AVAILABLE_SOURCES
        )
        toggles = [
            Checkbox(label, value=default, id=toggle_id)
            for toggle_id, label, default in _STAGE_TOGGLES
        ]

        yield Header()
        yield Container(
            Static(f"🔎 Product Research ({source_names})", id="title"),
            Horizontal(
                Input(placeholder="Keyword...", id="keyword_input"),
                Button("Run", variant="primary", id="run_btn"),
                id="search_bar",
            ),
            Horizontal(*toggles, id="stage_toggles"),
            Static("Ready", id="status"),
            cast(
                DataTable[str | Text],
                DataTable(
                    id="results_table",
                    zebra_stripes=True,
                    cursor_type="row",
                ),
            ),
            id="main_container",
        )
        yield Footer()

    def on_mount(self) -> None:
        """Configure the results table columns on startup."""
        table = cast(
            DataTable[str | Text],
            self.query_one("#results_table", DataTable),
        )
        table.add_columns(
            "Platform", "#", "Name", "Price", "Capture", "Details",
        )

    def on_unmount(self) -> None:
        if self.workbook is not None:
            self.workbook.close()
            self.workbook = None

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button click events."""
        if event.button.id == "run_btn":
            await self.perform_run()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handle Enter key in the keyword input."""
        if event.input.id == "keyword_input":
            await self.perform_run()

    def _toggle(self, toggle_id: str) -> bool:
        return self.query_one(f"#{toggle_id}", Checkbox).value

    def _set_status(self, message: str) -> None:
        self.query_one("#status", Static).update(message)

    def _progress_from_thread(self, message: str) -> None:
        """Pipeline notifier; the pipeline runs in a worker thread."""
        self.call_from_thread(self._set_status, message)

    def _make_pipeline(self, persist: bool) -> ResearchPipeline:
        if persist and self.workbook is None:
            self.workbook = SheetDB()
        return self.pipeline_factory(
            workbook=self.workbook if persist else None,
            notify=self._progress_from_thread,
        )

    async def perform_run(self) -> None:
        """Run the selected stages for the entered keyword."""
        keyword = self.query_one("#keyword_input", Input).value.strip()
        if not keyword:
            self.notify("Please enter a keyword", severity="warning")
            return
        if self.running:
            self.notify("A run is already in progress", severity="warning")
            return

        self.running = True
        self.pipeline = self._make_pipeline(self._toggle("check_persist"))
        self._set_status(f"🔍 Researching '{keyword}'...")
        try:
            result = await asyncio.to_thread(
                self.pipeline.run,
                keyword,
                capture=self._toggle("check_capture"),
                enrich=self._toggle("check_enrich"),
                report=self._toggle("check_report"),
            )
        except Exception as exc:
            logger.error("Run failed for '%s'", keyword, exc_info=True)
            self._set_status(f"❌ {exc}")
            self.notify(f"Error: {exc}", severity="error")
            return
        finally:
            self.running = False

        self.batch_name = result.batch_name
        store = self.pipeline.open_batch(result.batch_name)
        self.rows = []
        for _row, values in store.data_rows():
            listing = ProductListing.from_row(values)
            if listing is not None:
                self.rows.append((listing, values))
        self.populate_table()

        if not self.rows:
            self._set_status("❌ No listings found")
            return
        summary = f"✅ {len(self.rows)} listings in {result.batch_name}"
        if result.report is not None:
            summary += f" · report {result.report.name}"
        self._set_status(summary)

    def populate_table(self) -> None:
        """Fill the DataTable with the rows of the last batch."""
        table = cast(
            DataTable[str | Text],
            self.query_one("#results_table", DataTable),
        )
        table.clear()
        for listing, row in self.rows:
            table.add_row(
                Settings.label_for(listing.platform.value),
                str(listing.rank),
                listing.name[:60],
                f"{listing.price:,.0f}" if listing.price is not None else "",
                _capture_cell(row.get(COL_CAPTURE)),
                _detail_cell(row),
            )

    def _selected_url(self, index: int) -> str:
        if 0 <= index < len(self.rows):
            return self.rows[index][0].url
        return ""

    def on_data_table_row_selected(
        self, event: DataTable.RowSelected
    ) -> None:
        """Open the selected listing's URL in the default browser."""
        url = self._selected_url(event.cursor_row)
        if url:
            webbrowser.open(url)

    def action_export(self) -> None:
        """Export the last batch to a CSV file."""
        if self.pipeline is None or not self.batch_name:
            self.notify("No batch to export", severity="warning")
            return
        try:
            store = self.pipeline.open_batch(self.batch_name)
            stored = self.pipeline.storage.export_csv(store, self.batch_name)
            logger.info("Exported batch to %s", stored.path)
            self.notify(f"Exported to {stored.path}")
        except Exception as e:
            logger.error("Failed to export batch", exc_info=True)
            self.notify(f"Export failed: {e}", severity="error")

    def action_copy_url(self) -> None:
        """Copy the selected listing's URL to the clipboard."""
        try:
            import pyperclip  # type: ignore[import-untyped]

            table = cast(
                DataTable[str | Text],
                self.query_one("#results_table", DataTable),
            )
            url = self._selected_url(table.cursor_row)
            if not url:
                self.notify("No listing selected", severity="warning")
                return
            pyperclip.copy(url)
            self.notify("URL Copied")
        except Exception:
            logger.error(
                "Failed to copy URL to clipboard",
                exc_info=True,
            )
            self.notify(
                "Clipboard unavailable", severity="warning"
            )
