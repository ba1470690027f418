from __future__ import annotations

from pathlib import Path

from logger import get_logger

log = get_logger("stagearr.build_counter")


def next_build_id(counter_file: Path) -> int:
    """
    Allocate the next build number from a plain-text counter file.

    Missing or unreadable counters start again at 1.
    """
    current = 0
    if counter_file.exists():
        raw = counter_file.read_text(encoding="utf-8").strip()
        try:
            current = int(raw)
        except ValueError:
            log.warning(f"Ignoring corrupt build counter {counter_file}: {raw!r}")

    nxt = current + 1
    counter_file.parent.mkdir(parents=True, exist_ok=True)
    tmp = counter_file.with_suffix(".tmp")
    tmp.write_text(f"{nxt}\n", encoding="utf-8")
    tmp.replace(counter_file)
    return nxt
