"""Project-wide constants (range limits, streaming piece sizes, storage layout)."""

RANGE_REQUEST_MAX_BYTES: int = 1024 * 1024  # 1 MiB per partial response

STREAM_PIECE_SIZE_BYTES: int = 64 * 1024  # 64 KiB read/write pieces

DEFAULT_UPLOAD_CHUNK_SIZE_BYTES: int = 4 * 1024 * 1024  # 4 MiB per CLI upload request

SHARD_PREFIX_LENGTH: int = 3

DEFAULT_CONTENT_TYPE: str = "application/octet-stream"

DEFAULT_DATA_PATH: str = "./data"

DEFAULT_SERVER_PORT: int = 3000

API_PREFIX: str = "/api/v1/files"
