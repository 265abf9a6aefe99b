"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "resume", "status", "clear", "exit", "help"]

PATH_COMMANDS = {"upload": 1, "resume": 2}

DEFAULT_TEMP_IDENTIFIER = "cli"

STYLE = Style.from_dict(
    {
        "prompt": "#F45935 bold",
        "command": "#0088ff bold",
    }
)

RED_ORANGE = "\033[38;2;244;89;53m"
GREEN = "\033[32m"
RESET = "\033[0m"

LOGO = f"""{RED_ORANGE}
  ┬─┐┌─┐┌─┐┬ ┬┌┬┐┌─┐┌┐ ┬  ┌─┐  ┬ ┬┌─┐┬  ┌─┐┌─┐┌┬┐
  ├┬┘├┤ └─┐│ ││││├─┤├┴┐│  ├┤   │ │├─┘│  │ │├─┤ ││
  ┴└─└─┘└─┘└─┘┴ ┴┴ ┴└─┘┴─┘└─┘  └─┘┴  ┴─┘└─┘┴ ┴─┴┘
{RESET}"""

WELCOME_TITLE = "Resumable Upload CLI - chunked uploads with resume"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "upload> "

HELP_TEXT = """Available commands:
  upload <path> [temp_identifier]             Upload a file in chunks
  resume <upload_id> <path> [temp_identifier] Resume an interrupted upload
  status <upload_id>                          Show chunks the server already holds
  clear                                       Clear screen and redisplay welcome message
  help                                        Show this help
  exit                                        Exit REPL

Files up to 40 MiB are sent as 512 KiB chunks. A failed upload prints its
upload id; pass it to 'resume' to send only the missing chunks.
Examples:
  upload reports/q3.pdf
  upload photo.png project-42
  status 3f1c2a9e-8d4b-4f7a-9c61-2b0e5d7a1f33
  resume 3f1c2a9e-8d4b-4f7a-9c61-2b0e5d7a1f33 reports/q3.pdf"""
