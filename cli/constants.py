"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "resume", "list", "info", "download", "chunk-size", "clear", "exit", "help"]

PATH_COMMANDS = ("upload", "resume", "download")

STYLE = Style.from_dict(
    {
        "prompt": "#2E86DE bold",
        "command": "#0088ff bold",
    }
)

BLUE = "\033[38;2;46;134;222m"
GREEN = "\033[32m"
RESET = "\033[0m"

LOGO = f"""{BLUE}
  +------------------------------------------+
  |   chunked file server  ::  upload shell  |
  +------------------------------------------+
{RESET}"""

WELCOME_TITLE = "Chunked File Server CLI - resumable uploads"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "files> "

HELP_TEXT = """Available commands:
  upload <path> [name] [--type <media-type>]   Create an entry and upload a local file in chunks
  resume <entry-id> <path>                     Continue an interrupted upload from the committed size
  list                                         List all entries
  info <entry-id>                              Show entry metadata
  download <entry-id> <output> [start-end]     Download an entry, optionally a single byte range
  chunk-size [bytes]                           Show or set bytes sent per upload request
  clear                                        Clear screen and redisplay welcome message
  help                                         Show this help
  exit                                         Exit REPL

Examples:
  upload ./report.pdf
  upload ./notes.txt meeting-notes.txt --type text/plain
  resume 3f2b6c1e-9a7d-4c1e-8b55-0d1f2e3a4b5c ./report.pdf
  download 3f2b6c1e-9a7d-4c1e-8b55-0d1f2e3a4b5c ./copy.pdf
  download 3f2b6c1e-9a7d-4c1e-8b55-0d1f2e3a4b5c ./head.bin 0-1023
  chunk-size 1048576"""
