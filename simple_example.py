"""
Minimal PDF annotator example.

Usage: python simple_example.py path/to/file.pdf [config.ini]
"""

import logging
import sys
from pathlib import Path

import flet as ft

from flet_pdf_annotator import AnnotationViewer, PdfDocument, Tool, load_config

logging.basicConfig(level=logging.INFO)


def main(page: ft.Page):
    page.title = "PDF Annotator"
    page.padding = 0

    pdf_path = Path(sys.argv[1])
    config = load_config(sys.argv[2]) if len(sys.argv) > 2 else None
    document = PdfDocument(pdf_path, config=config)

    status = ft.Text("")

    def on_create(annotation):
        status.value = f"Created {annotation.type.value} on page {annotation.page_index + 1}"
        page.update()

    viewer = AnnotationViewer(
        document,
        config=document.config,
        scale=1.2,
        on_annotation_create=on_create,
        on_annotation_click=lambda annotation_id: print("Clicked", annotation_id),
    )
    page.on_keyboard_event = viewer.handle_keyboard_event

    def tool_button(icon, tool):
        return ft.IconButton(icon=icon, tooltip=tool.value, on_click=lambda e: viewer.set_tool(tool))

    def on_export(e):
        target = pdf_path.with_suffix(".xfdf")
        target.write_text(
            viewer.export_xfdf(document.bookmarks(), source_filename=pdf_path.name),
            encoding="utf-8",
        )
        status.value = f"Exported {len(viewer.collection)} annotations to {target.name}"
        page.update()

    toolbar = ft.Row(
        [
            tool_button(ft.Icons.PAN_TOOL, Tool.NONE),
            tool_button(ft.Icons.CROP_SQUARE, Tool.SQUARE),
            tool_button(ft.Icons.HIGHLIGHT, Tool.HIGHLIGHT),
            tool_button(ft.Icons.TEXT_FIELDS, Tool.FREE_TEXT),
            ft.IconButton(icon=ft.Icons.UNDO, on_click=lambda e: viewer.undo()),
            ft.IconButton(icon=ft.Icons.REDO, on_click=lambda e: viewer.redo()),
            ft.IconButton(icon=ft.Icons.CHEVRON_LEFT, on_click=lambda e: viewer.previous_page()),
            ft.IconButton(icon=ft.Icons.CHEVRON_RIGHT, on_click=lambda e: viewer.next_page()),
            ft.IconButton(icon=ft.Icons.SAVE_ALT, tooltip="Export XFDF", on_click=on_export),
            status,
        ],
        spacing=4,
    )

    page.add(
        ft.Column(
            [toolbar, ft.Row([viewer.control], scroll=ft.ScrollMode.AUTO)],
            scroll=ft.ScrollMode.AUTO,
            expand=True,
        )
    )


if __name__ == "__main__":
    ft.app(target=main)
