"""
SessionLib - Interactive coloring session and background photo ingestion.
"""

from CB_Libs.SessionLib.coloring_session import ColoringSession
from CB_Libs.SessionLib.page_ingest import IngestJob, PageIngestWorker

__all__ = [
    "ColoringSession",
    "IngestJob",
    "PageIngestWorker",
]
