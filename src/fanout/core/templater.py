"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/templater.py
Binds work items into argument vectors.

Each argv element is rendered on its own and handed to the process-launch
primitive as a list, so item values are never seen by a shell: spaces, quotes,
';' or '$(...)' inside a filename stay inside one argument.

Placeholders:
  {} / {item}  full item value
  {name}       basename
  {stem}       basename without extension
  {ext}        extension including the dot
  {dir}        parent directory
  {index}      enumeration index (supports format specs, e.g. {index:04d})
  {<param>}    auxiliary parameter supplied once per run (password, port, ...)
"""

import logging
import string
from typing import Dict, List, Mapping, Optional, Tuple

from fanout.core.errors import TemplateError
from fanout.core.models import CommandSpec, Invocation, WorkItem

logger = logging.getLogger(__name__)

ITEM_FIELDS = ("", "item", "name", "stem", "ext", "dir", "index")

# (literal_text, field_name, format_spec)
Piece = Tuple[str, Optional[str], str]

_formatter = string.Formatter()


class CommandTemplater:
    """
    Validates a CommandSpec once and renders it per item.

    All structural problems are detected in the constructor, so a broken
    template aborts the run before anything is dispatched.
    """

    def __init__(self, spec: CommandSpec, params: Optional[Mapping[str, object]] = None):
        self.spec = spec
        self.params: Dict[str, str] = {k: str(v) for k, v in (params or {}).items()}

        clashes = sorted(set(self.params) & set(ITEM_FIELDS))
        if clashes:
            raise TemplateError(f"Parameter names reserved for item placeholders: {', '.join(clashes)}")
        if not spec.argv:
            raise TemplateError("Command template is empty")

        self._argv = [self._compile(t) for t in spec.argv]
        self._stdout = self._compile(spec.stdout_path) if spec.stdout_path else None
        self._stdin = self._compile(spec.stdin_path) if spec.stdin_path else None
        self._cwd = self._compile(spec.cwd) if spec.cwd else None

        if spec.require_item and not self._references_item():
            raise TemplateError(
                "Command template must reference the item, e.g. {item} or {}: "
                + " ".join(spec.argv)
            )

    def _compile(self, template: str) -> List[Piece]:
        """Parse a template and reject unknown fields and conversions."""
        try:
            parsed = list(_formatter.parse(template))
        except ValueError as e:
            raise TemplateError(f"Malformed template {template!r}: {e}") from e

        pieces = []
        for literal, field_name, format_spec, conversion in parsed:
            if field_name is not None:
                if conversion:
                    raise TemplateError(f"Conversions are not supported: {template!r}")
                if field_name not in ITEM_FIELDS and field_name not in self.params:
                    if field_name.isidentifier():
                        raise TemplateError(f"Missing value for placeholder {{{field_name}}} in {template!r}")
                    raise TemplateError(f"Unknown placeholder {{{field_name}}} in {template!r}")
            pieces.append((literal, field_name, format_spec or ""))
        return pieces

    def _references_item(self) -> bool:
        compiled = list(self._argv)
        compiled.extend(p for p in (self._stdout, self._stdin) if p is not None)
        return any(
            field_name in ITEM_FIELDS
            for pieces in compiled
            for _, field_name, _ in pieces
        )

    def _values(self, item: WorkItem) -> Dict[str, object]:
        values: Dict[str, object] = dict(self.params)
        values.update({
            "": item.value,
            "item": item.value,
            "name": item.name,
            "stem": item.stem,
            "ext": item.extension,
            "dir": item.parent,
            "index": item.index,
        })
        return values

    @staticmethod
    def _render(pieces: List[Piece], values: Mapping[str, object]) -> str:
        parts = []
        for literal, field_name, format_spec in pieces:
            parts.append(literal)
            if field_name is None:
                continue
            try:
                parts.append(format(values[field_name], format_spec))
            except (ValueError, TypeError) as e:
                raise TemplateError(f"Cannot format {{{field_name}:{format_spec}}}: {e}") from e
        return "".join(parts)

    def render(self, item: WorkItem) -> Invocation:
        """Resolve the template for one item."""
        values = self._values(item)
        argv = tuple(self._render(pieces, values) for pieces in self._argv)
        if not argv[0]:
            raise TemplateError(f"Template renders an empty program name for {item.value!r}")

        return Invocation(
            item=item,
            argv=argv,
            stdout_path=self._render(self._stdout, values) if self._stdout else None,
            stdin_path=self._render(self._stdin, values) if self._stdin else None,
            cwd=self._render(self._cwd, values) if self._cwd else None,
            timeout=self.spec.timeout,
        )

    def render_all(self, items: List[WorkItem]) -> List[Invocation]:
        """Resolve every invocation up front; any failure aborts the whole run."""
        invocations = [self.render(item) for item in items]
        logger.debug(f"Rendered {len(invocations)} invocations of {self.spec.argv[0]}")
        return invocations
