"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/textops.py
Per-file text operations run in-process by CallableRunner.

Each operation takes one WorkItem, writes its output next to the input and
returns a one-line summary that the dispatcher treats as stdout.

dedupe_sorted_file is the pre-sorted-text deduplication: adjacent duplicate
lines are dropped (uniq semantics). It works on one file at a time and shares
nothing with content-identity deduplication.
"""

import csv
import json
from typing import Callable, Dict, Iterable, Iterator, List

from fanout.core.models import WorkItem


DEDUPED_SUFFIX = "_deduped"


def _summary(item: WorkItem, target: str, written: int, dropped: int = 0) -> bytes:
    return f"{item.value} -> {target}: {written} written, {dropped} dropped\n".encode(
        "utf-8", errors="surrogateescape")


def unique_adjacent(lines: Iterable[bytes]) -> Iterator[bytes]:
    """Yields lines, skipping any line equal to the one right before it."""
    previous = None
    for line in lines:
        if line != previous:
            yield line
        previous = line


def _normalized_lines(path: str) -> Iterator[bytes]:
    # A missing newline on the last line must not make it differ from an equal earlier line
    with open(path, "rb") as f:
        for line in f:
            yield line if line.endswith(b"\n") else line + b"\n"


def dedupe_sorted_file(item: WorkItem) -> bytes:
    """Removes adjacent duplicate lines from an already sorted file."""
    target = item.value + DEDUPED_SUFFIX
    written = dropped = 0
    with open(target, "wb") as out:
        previous = None
        for line in _normalized_lines(item.value):
            if line == previous:
                dropped += 1
                continue
            out.write(line)
            written += 1
            previous = line
    return _summary(item, target, written, dropped)


def dedupe_lines_file(item: WorkItem) -> bytes:
    """Sorts a file and keeps one copy of every line (sort | uniq)."""
    target = item.value + DEDUPED_SUFFIX
    lines = sorted(_normalized_lines(item.value))
    unique = list(unique_adjacent(lines))
    with open(target, "wb") as out:
        out.writelines(unique)
    return _summary(item, target, len(unique), len(lines) - len(unique))


def txt_to_csv_file(item: WorkItem) -> bytes:
    """Turns every space into a comma, line by line."""
    target = item.value + ".csv"
    written = 0
    with open(item.value, "r", encoding="utf-8", newline="") as src, \
            open(target, "w", encoding="utf-8", newline="") as out:
        for line in src:
            out.write(line.replace(" ", ","))
            written += 1
    return _summary(item, target, written)


def csv_to_json_file(item: WorkItem) -> bytes:
    """CSV with a header row -> JSON array of objects."""
    target = item.value + ".json"
    with open(item.value, "r", encoding="utf-8", newline="") as src:
        rows = list(csv.DictReader(src))
    with open(target, "w", encoding="utf-8") as out:
        json.dump(rows, out)
    return _summary(item, target, len(rows))


def json_to_csv_file(item: WorkItem) -> bytes:
    """
    JSON array of objects -> CSV.
    The header is the union of keys in first-seen order; missing cells stay empty.
    """
    target = item.value + ".csv"
    with open(item.value, "r", encoding="utf-8") as src:
        data = json.load(src)
    if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
        raise ValueError("expected a JSON array of objects")

    fieldnames: List[str] = []
    for row in data:
        for key in row:
            if key not in fieldnames:
                fieldnames.append(key)

    with open(target, "w", encoding="utf-8", newline="") as out:
        if fieldnames:
            writer = csv.DictWriter(out, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(data)
    return _summary(item, target, len(data))


LOCAL_OPERATIONS: Dict[str, Callable[[WorkItem], bytes]] = {
    "dedupe-sorted": dedupe_sorted_file,
    "dedupe-lines": dedupe_lines_file,
    "txt-to-csv": txt_to_csv_file,
    "csv-to-json": csv_to_json_file,
    "json-to-csv": json_to_csv_file,
}


def get_operation(name: str) -> Callable[[WorkItem], bytes]:
    try:
        return LOCAL_OPERATIONS[name]
    except KeyError:
        raise ValueError(
            f"Unknown operation '{name}'. Valid options: {', '.join(LOCAL_OPERATIONS)}"
        ) from None
