from fanout.core.hasher import HASH_ALGORITHMS
from fanout.core.models import RemovalStrategy, SourceKind

SOURCE_KIND_ALIASES = {kind.value: kind for kind in SourceKind}

SOURCE_KIND_CHOICES = list(SOURCE_KIND_ALIASES.keys())

SOURCE_KIND_HELP_TEXT = "How items are read from SOURCE:\n" + "".join(
    f"  {kind.value:<8} : {kind.display_name}{' (default)' if kind == SourceKind.FILES else ''}\n"
    for kind in SourceKind
)

HASH_ALGORITHM_CHOICES = list(HASH_ALGORITHMS.keys())

HASH_ALGORITHM_HELP_TEXT = (
    "Content fingerprint used to detect duplicates:\n"
    "  xxh128 : xxHash3 128-bit (default, fastest)\n"
    "  xxh64  : xxHash 64-bit\n"
    "  sha256 : SHA-256\n"
)

REMOVAL_ALIASES = {
    False: RemovalStrategy.DELETE,
    True: RemovalStrategy.TRASH,
}

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_SETUP_ERROR = 2
EXIT_NO_ITEMS = 3
EXIT_CANCELLED = 130

EPILOG_TEXT = """
Every verb has the shape:  %(prog)s <verb> <source> [verb arguments...] [jobs]
jobs defaults to the number of CPUs.

Examples:
  Line count of every file in ./data, 4 at a time
  %(prog)s wc ./data 4

  Search every file below ./src for a pattern
  %(prog)s grep ./src 'TODO' 8

  Resize all JPEGs to 800x600
  %(prog)s resize-images ./photos 800 600 4

  Any command, one process per item ({} is the item)
  %(prog)s run --kind walk ./logs 4 gzip -k {}

  Remove byte-identical files, keeping the first one found
  %(prog)s dedupe-files ~/Downloads 8 --dry-run

Exit codes: 0 success, 1 some items failed, 2 setup error, 3 no items, 130 cancelled
"""
