"""Configuration settings for the Flat File Server."""
import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Storage limits
MAX_FILE_SIZE = 1_000_000  # bytes
CHUNK_SIZE = 64 * 1024

# Failure monitor
FAILURE_THRESHOLD = 5
FAILURE_WINDOW_SECONDS = 60

# Directory paths
FILES_DIR = "./files"
PUBLIC_DIR = str(Path(__file__).parent / "public")
LOG_DIR = "./logs"


@dataclass(frozen=True)
class ServerConfig:
    files_root: Path
    public_root: Path
    max_file_size: int = MAX_FILE_SIZE
    chunk_size: int = CHUNK_SIZE
    log_dir: Optional[Path] = None
    failure_threshold: int = FAILURE_THRESHOLD
    failure_window_seconds: int = FAILURE_WINDOW_SECONDS

    def __post_init__(self):
        if self.max_file_size <= 0:
            raise ValueError("Maximum file size must be positive")
        if self.chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        # Normalize so that root comparisons in the path validator are exact
        object.__setattr__(self, "files_root", Path(os.path.abspath(self.files_root)))
        object.__setattr__(self, "public_root", Path(os.path.abspath(self.public_root)))

    @classmethod
    def from_env(cls) -> 'ServerConfig':
        """Create ServerConfig from FILE_SERVER_* environment variables."""
        log_dir = os.getenv("FILE_SERVER_LOG_DIR", LOG_DIR)
        return cls(
            files_root=Path(os.getenv("FILE_SERVER_FILES_ROOT", FILES_DIR)),
            public_root=Path(os.getenv("FILE_SERVER_PUBLIC_ROOT", PUBLIC_DIR)),
            max_file_size=int(os.getenv("FILE_SERVER_MAX_FILE_SIZE", MAX_FILE_SIZE)),
            chunk_size=int(os.getenv("FILE_SERVER_CHUNK_SIZE", CHUNK_SIZE)),
            log_dir=Path(log_dir) if log_dir else None,
            failure_threshold=int(os.getenv("FILE_SERVER_FAILURE_THRESHOLD", FAILURE_THRESHOLD)),
            failure_window_seconds=int(
                os.getenv("FILE_SERVER_FAILURE_WINDOW_SECONDS", FAILURE_WINDOW_SECONDS)
            ),
        )

    @classmethod
    def from_args(cls, argv=None) -> tuple['ServerConfig', str, int]:
        """Create ServerConfig from command line arguments.

        Returns the config together with the host and port to bind.
        """
        defaults = cls.from_env()
        parser = argparse.ArgumentParser(description='Flat file store over HTTP')
        parser.add_argument('--host', type=str, default='0.0.0.0',
                            help='Interface to bind')
        parser.add_argument('--port', type=int, default=8000,
                            help='Port to listen on')
        parser.add_argument('--files-root', type=Path, default=defaults.files_root,
                            help='Directory holding the stored files')
        parser.add_argument('--public-root', type=Path, default=defaults.public_root,
                            help='Directory holding index.html')
        parser.add_argument('--max-file-size', type=int, default=defaults.max_file_size,
                            help='Upload size ceiling in bytes')
        args = parser.parse_args(argv)

        config = cls(
            files_root=args.files_root,
            public_root=args.public_root,
            max_file_size=args.max_file_size,
            chunk_size=defaults.chunk_size,
            log_dir=defaults.log_dir,
            failure_threshold=defaults.failure_threshold,
            failure_window_seconds=defaults.failure_window_seconds,
        )
        return config, args.host, args.port
