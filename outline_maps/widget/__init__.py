"""Map widget: host adapter, popup synchronization and mounting.

Modules:
    dom            -- Element tree with listeners and subtree observation
    host           -- Map host interface and the element-backed host
    popup          -- Hover/click state machine and popup reconciliation
    alias_preview  -- Hover preview for alias links in popup bodies
    maps           -- One mounted map widget
"""

from outline_maps.widget.host import ElementMapHost, MapHost
from outline_maps.widget.maps import MapWidget
from outline_maps.widget.popup import PopupSynchronizer

__all__ = [
    "ElementMapHost",
    "MapHost",
    "MapWidget",
    "PopupSynchronizer",
]
