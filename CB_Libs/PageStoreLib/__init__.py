"""
PageStoreLib - On-disk storage of coloring pages.
"""

from CB_Libs.PageStoreLib.page_store import (
    ColoringPage,
    create_page,
    delete_page,
    get_page_dir,
    get_pages_dir,
    list_pages,
    load_layers,
    load_page,
    save_working_layer,
)

__all__ = [
    "ColoringPage",
    "create_page",
    "delete_page",
    "get_page_dir",
    "get_pages_dir",
    "list_pages",
    "load_layers",
    "load_page",
    "save_working_layer",
]
