"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/file_service.py
File removal used by the deduplication pass: permanent delete or system trash.
"""
import os
from pathlib import Path
from typing import Callable

from send2trash import send2trash

from fanout.core.models import RemovalStrategy


class FileService:
    """
    Cross-platform file removal.
    Both methods raise RuntimeError with the underlying cause on failure.
    """

    @staticmethod
    def delete_file(file_path: str):
        """Permanently removes a file."""
        path = Path(file_path)

        if not path.exists() and not path.is_symlink():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            os.remove(path)
        except OSError as e:
            raise RuntimeError(f"Failed to delete: {e}") from e

    @staticmethod
    def move_to_trash(file_path: str):
        """Moves a file to the system trash."""
        path = Path(file_path).resolve()

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            send2trash(str(path))
        except Exception as e:
            raise RuntimeError(f"Failed to move to trash: {e}") from e

    @classmethod
    def remover_for(cls, strategy: RemovalStrategy) -> Callable[[str], None]:
        if strategy == RemovalStrategy.TRASH:
            return cls.move_to_trash
        return cls.delete_file

