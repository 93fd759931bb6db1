"""
ExportLib - PNG and PDF export of finished pages.
"""

from CB_Libs.ExportLib.page_exporter import PageExportConfig, PageExporter, export_page

__all__ = [
    "PageExportConfig",
    "PageExporter",
    "export_page",
]
