"""
Icon and color registry.

Sections store a plain icon key; the client resolves it to an actual icon at
render time. Unknown or missing keys fall back to DEFAULT_ICON.
"""

from __future__ import annotations

DEFAULT_ICON = "FolderOpen"

ICON_NAMES: frozenset[str] = frozenset(
    {
        "MessageCircle",
        "FlaskConical",
        "Users",
        "DollarSign",
        "ShoppingCart",
        "FolderOpen",
        "ExternalLink",
        "Settings",
        "ShieldCheck",
        "Info",
        "Briefcase",
        "Calendar",
        "Code",
        "FileText",
        "Gift",
        "Globe",
        "Home",
        "Mail",
        "Map",
        "Music",
        "Phone",
        "PieChart",
        "Star",
        "Tag",
        "Terminal",
        "Truck",
        "Video",
        "Zap",
        "Image",
    }
)

# name -> theme classes, in picker order
COLOR_OPTIONS: dict[str, str] = {
    "Blue": "bg-blue-50 border-blue-200 hover:bg-blue-100",
    "Purple": "bg-purple-50 border-purple-200 hover:bg-purple-100",
    "Green": "bg-green-50 border-green-200 hover:bg-green-100",
    "Yellow": "bg-yellow-50 border-yellow-200 hover:bg-yellow-100",
    "Orange": "bg-orange-50 border-orange-200 hover:bg-orange-100",
    "Red": "bg-red-50 border-red-200 hover:bg-red-100",
    "Gray": "bg-gray-50 border-gray-200 hover:bg-gray-100",
    "Indigo": "bg-indigo-50 border-indigo-200 hover:bg-indigo-100",
}

DEFAULT_COLOR = COLOR_OPTIONS["Gray"]


def resolve_icon_name(name: str | None) -> str:
    if name and name in ICON_NAMES:
        return name
    return DEFAULT_ICON
