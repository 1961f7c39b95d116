"""
Rich themes for the terminal interface.
"""

from rich.theme import Theme

PALETTES = {
    "dark": {
        "primary": "#d3869b",
        "secondary": "#b16286",
        "accent": "#fbf1c7",
        "success": "#b8bb26",
        "warning": "#fabd2f",
        "error": "#fb4934",
        "info": "#83a598",
        "text": "#ebdbb2",
        "text_dim": "#928374",
    },
    "light": {
        "primary": "#8f3f71",
        "secondary": "#b16286",
        "accent": "#3c3836",
        "success": "#79740e",
        "warning": "#b57614",
        "error": "#9d0006",
        "info": "#076678",
        "text": "#3c3836",
        "text_dim": "#7c6f64",
    },
}


def build_theme(name: str = "dark") -> Theme:
    """Builds the named theme, falling back to dark."""
    c = PALETTES.get(name, PALETTES["dark"])
    return Theme(
        {
            "title": f"bold {c['primary']}",
            "subtitle": f"italic {c['secondary']}",
            "text": c["text"],
            "text.dim": c["text_dim"],
            "success": f"bold {c['success']}",
            "warning": c["warning"],
            "error": f"bold {c['error']}",
            "info": c["info"],
            "border": c["secondary"],
            "list.item": c["text"],
            "list.item.active": f"bold {c['accent']} on {c['secondary']}",
            "help": c["text_dim"],
        }
    )
