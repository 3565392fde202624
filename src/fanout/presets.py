"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

presets.py
Ready-made verbs. Each one is only a CommandSpec template plus where its items
come from; all of them run through the same dispatcher.

Operation-specific values (pattern, password, width...) are positional CLI
arguments in the order listed in `params` and become template placeholders.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from fanout.core.models import SourceKind


@dataclass(frozen=True)
class Preset:
    verb: str
    help: str
    argv: Tuple[str, ...] = ()
    kind: SourceKind = SourceKind.FILES
    pattern: Optional[str] = None
    params: Tuple[str, ...] = ()
    stdout_path: Optional[str] = None
    stdin_path: Optional[str] = None
    operation: Optional[str] = None  # in-process operation instead of argv

    @property
    def is_local(self) -> bool:
        return self.operation is not None

    @property
    def source_help(self) -> str:
        if self.kind == SourceKind.LINES:
            return "File with one item per line"
        return "Directory containing the items"


_PRESETS: List[Preset] = [
    # Listing and inspection
    Preset("ls", "ls -l every subdirectory",
           ("ls", "-l", "--", "{item}"), kind=SourceKind.DIRS),
    Preset("du", "Disk usage of every directory entry",
           ("du", "-sh", "--", "{item}"), kind=SourceKind.CHILDREN),
    Preset("wc", "Line count of every file",
           ("wc", "-l", "--", "{item}")),
    Preset("grep", "Search every file below the directory (exit 1 = no match)",
           ("grep", "-H", "-n", "-e", "{pattern}", "--", "{item}"),
           kind=SourceKind.WALK, params=("pattern",)),
    Preset("awk", "Run an awk program on every file",
           ("awk", "{program}", "{item}"), params=("program",)),
    Preset("hash", "SHA-256 of every file",
           ("sha256sum", "--", "{item}")),
    Preset("log-analysis", "grep *.log files into analysis_results/<name>_matches",
           ("grep", "-H", "-n", "-e", "{pattern}", "--", "{item}"),
           pattern="*.log", params=("pattern",),
           stdout_path="{dir}/analysis_results/{name}_matches"),

    # File transformation
    Preset("sort", "Sort every file into sorted_<name>",
           ("sort", "-o", "{dir}/sorted_{name}", "--", "{item}")),
    Preset("zip", "Zip every directory entry into <entry>.zip",
           ("zip", "-q", "-r", "{item}.zip", "{item}"), kind=SourceKind.CHILDREN),
    Preset("unzip", "Unzip every *.zip into <file>_unzipped",
           ("unzip", "-o", "-q", "{item}", "-d", "{item}_unzipped"), pattern="*.zip"),
    Preset("encrypt", "AES-256-CBC encrypt every file into <file>.enc",
           ("openssl", "enc", "-aes-256-cbc", "-salt", "-pbkdf2",
            "-in", "{item}", "-out", "{item}.enc", "-pass", "pass:{password}"),
           params=("password",)),
    Preset("decrypt", "Decrypt every *.enc file into <file>.dec",
           ("openssl", "enc", "-d", "-aes-256-cbc", "-pbkdf2",
            "-in", "{item}", "-out", "{item}.dec", "-pass", "pass:{password}"),
           pattern="*.enc", params=("password",)),

    # Images, audio, video
    Preset("resize-images", "Resize every *.jpg to WIDTHxHEIGHT into resized_<name>",
           ("convert", "{item}", "-resize", "{width}x{height}!", "{dir}/resized_{name}"),
           pattern="*.jpg", params=("width", "height")),
    Preset("grayscale", "Convert every *.jpg to grayscale into gray_<name>",
           ("convert", "{item}", "-colorspace", "Gray", "{dir}/gray_{name}"),
           pattern="*.jpg"),
    Preset("rotate-images", "Rotate every *.jpg by ANGLE into rotated_<name>",
           ("convert", "{item}", "-rotate", "{angle}", "{dir}/rotated_{name}"),
           pattern="*.jpg", params=("angle",)),
    Preset("video-to-audio", "Extract the audio of every *.mp4 into <file>.mp3",
           ("ffmpeg", "-nostdin", "-y", "-i", "{item}", "-q:a", "0", "-map", "a", "{item}.mp3"),
           pattern="*.mp4"),
    Preset("resize-video", "Scale every *.mp4 to WIDTH:HEIGHT into resized_<name>",
           ("ffmpeg", "-nostdin", "-y", "-i", "{item}", "-vf", "scale={width}:{height}",
            "{dir}/resized_{name}"),
           pattern="*.mp4", params=("width", "height")),
    Preset("convert-audio", "Convert every *.wav into <file>.FORMAT",
           ("ffmpeg", "-nostdin", "-y", "-i", "{item}", "{item}.{format}"),
           pattern="*.wav", params=("format",)),

    # Hosts and URLs
    Preset("fetch", "Download every URL of the list into OUTPUT_DIR/<index>.html",
           ("wget", "-q", "-O", "{output_dir}/{index:04d}.html", "--", "{item}"),
           kind=SourceKind.LINES, params=("output_dir",)),
    Preset("port-scan", "Check PORT on every host of the list with nc",
           ("nc", "-z", "-v", "-w1", "{item}", "{port}"),
           kind=SourceKind.LINES, params=("port",)),
    Preset("scp", "Copy FILE to USER@host:DEST for every host of the list",
           ("scp", "-q", "--", "{file}", "{user}@{item}:{dest}"),
           kind=SourceKind.LINES, params=("user", "file", "dest")),
    Preset("remote-cmd", "Run COMMAND as USER on every host of the list",
           ("ssh", "{user}@{item}", "{command}"),
           kind=SourceKind.LINES, params=("user", "command")),

    # Databases
    Preset("sql", "Feed every *.sql file to CLIENT DATABASE on stdin (psql, mysql...)",
           ("{client}", "{database}"), pattern="*.sql",
           params=("client", "database"), stdin_path="{item}"),
    Preset("bulk-insert-psql", "Load every *.csv (with header) into TABLE of DATABASE with psql \\copy",
           ("psql", "-X", "-q", "-v", "ON_ERROR_STOP=1", "-d", "{database}",
            "-c", "\\copy {table} FROM pstdin WITH (FORMAT csv, HEADER)"),
           pattern="*.csv", params=("database", "table"), stdin_path="{item}"),
    Preset("bulk-insert-mysql", "Load every *.csv (with header) into TABLE of DATABASE with LOAD DATA",
           ("mysql", "--local-infile=1", "-e",
            "LOAD DATA LOCAL INFILE '/dev/stdin' INTO TABLE {table} "
            "FIELDS TERMINATED BY ',' OPTIONALLY ENCLOSED BY '\"' IGNORE 1 LINES",
            "{database}"),
           pattern="*.csv", params=("database", "table"), stdin_path="{item}"),

    # In-process text operations
    Preset("dedupe-sorted", "Drop adjacent duplicate lines of pre-sorted *.txt into <file>_deduped",
           pattern="*.txt", operation="dedupe-sorted"),
    Preset("dedupe-lines", "Sort and drop duplicate lines of *.txt into <file>_deduped",
           pattern="*.txt", operation="dedupe-lines"),
    Preset("txt-to-csv", "Replace spaces by commas in *.txt into <file>.csv",
           pattern="*.txt", operation="txt-to-csv"),
    Preset("csv-to-json", "Convert *.csv with header into <file>.json",
           pattern="*.csv", operation="csv-to-json"),
    Preset("json-to-csv", "Convert *.json arrays of objects into <file>.csv",
           pattern="*.json", operation="json-to-csv"),
]

PRESETS: Dict[str, Preset] = {preset.verb: preset for preset in _PRESETS}


def get_preset(verb: str) -> Preset:
    try:
        return PRESETS[verb]
    except KeyError:
        raise ValueError(f"Unknown verb '{verb}'. Valid options: {', '.join(PRESETS)}") from None
