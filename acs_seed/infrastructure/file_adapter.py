"""
File system adapter - isolates file I/O operations.
Used for writing generated SQL scripts.
"""

from pathlib import Path

class FileAdapter:
    """Adapter for file system operations."""

    def write_text(self, file_path: Path, content: str) -> bool:
        """Write text content to file."""
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)

            with open(file_path, 'w', encoding='utf-8') as f:
                f.write(content)

            return True
        except OSError:
            return False

def create_file_adapter() -> FileAdapter:
    """Factory function to create file adapter."""
    return FileAdapter()
