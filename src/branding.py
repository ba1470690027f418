from __future__ import annotations

import shutil

# --------------------------------------------------
# Symbols
# --------------------------------------------------


class SYMBOLS:
    # Outcome
    OK = "✔"
    WARN = "⚠"
    FAIL = "✖"

    # Flow
    RUNNING = "▶"
    SKIPPED = "⤼"
    BLOCKED = "⛔"
    CLEANUP = "🧹"
    ARCHIVE = "📦"


# --------------------------------------------------
# Banner
# --------------------------------------------------

STAGEARR_BANNER = r"""

     _
 ___| |_ __ _  __ _  ___  __ _ _ __ _ __
/ __| __/ _` |/ _` |/ _ \/ _` | '__| '__|
\__ \ || (_| | (_| |  __/ (_| | |  | |
|___/\__\__,_|\__, |\___|\__,_|_|  |_|
              |___/

"""


# --------------------------------------------------
# Stage framing (log-friendly, plain text)
# --------------------------------------------------

MIN_WIDTH = 60
MAX_WIDTH = 100
# room for the level column RichHandler prints in front of each line
LEVEL_GUTTER = 10


def _line_width() -> int:
    cols = shutil.get_terminal_size(fallback=(MIN_WIDTH + LEVEL_GUTTER, 24)).columns
    return max(MIN_WIDTH, min(MAX_WIDTH, cols - LEVEL_GUTTER))


def STAGEARR_HEADER(title: str, *, width: int | None = None) -> str:
    """
    Three-line frame around a section title:

        ╔══════════[ ▶ ]══════════╗
        │   Stage 4/13: Run Tests  │
        ╚══════════════════════════╝
    """
    title = title.strip()
    inner = max((width or _line_width()) - 2, len(title) + 4)

    motif = f"[ {SYMBOLS.RUNNING} ]"
    left = (inner - len(motif)) // 2
    right = inner - len(motif) - left

    return (
        f"\n╔{'═' * left}{motif}{'═' * right}╗"
        f"\n│{title.center(inner)}│"
        f"\n╚{'═' * inner}╝\n"
    )


def STAGEARR_SECTION_END(*, width: int | None = None) -> str:
    w = width or _line_width()
    return "\n" + "━" * w + "\n"
