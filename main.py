"""Entry point for the Simple-RelStore command-line interface.

This script creates an empty catalog, starts a REPL for command input,
executes statements via the executor, and displays results as fixed-width
tables. 'load', 'save' and 'exit' are handled here, outside the executor.
"""

# Standard library imports
import argparse
import sys
import time

# Local application imports
from catalog.schema import Schema
from config import Config, PROMPT
from errors import StorageError
from executor import Executor, Outcome
from snapshot import render_result, render_snapshot, save_snapshot

# ANSI color codes for styled terminal output
RESET = "\033[0m"      # Reset all attributes
RED = "\033[91m"       # Bright red for errors
GREEN = "\033[92m"     # Bright green for completed statements
YELLOW = "\033[93m"    # Bright yellow for informational messages

# Lines starting with these words are handled by the session, not the executor
SESSION_COMMANDS = ("load", "save", "exit")


def is_session_command(line: str) -> bool:
    parts = line.split(maxsplit=1)
    return bool(parts) and parts[0].lower() in SESSION_COMMANDS


class Session:
    """One interpreter session: a catalog, its executor and the session commands."""

    def __init__(self, config: Config = None, schema: Schema = None):
        self.config = config or Config()
        self.schema = schema if schema is not None else Schema("default")
        self.executor = Executor(self.schema)
        self.running = True

    def submit(self, text: str) -> list[Outcome]:
        """Execute every statement in text and print one report per statement."""
        start_time = time.time()
        outcomes = self.executor.run(text)
        for outcome in outcomes:
            self.report(outcome)
        if outcomes:
            # Print execution duration in milliseconds
            duration_ms = (time.time() - start_time) * 1000
            print(f"{YELLOW}⏱ Execution Time: {duration_ms:.2f} ms{RESET}")
        return outcomes

    def report(self, outcome: Outcome):
        """Print a statement's result, or its error in red."""
        if not outcome.ok:
            self.report_error(outcome.error)
            return
        result = outcome.result
        if result.result_set is not None:
            print(render_result(result.result_set, self.config.column_width))
            print(f"{YELLOW}{result.message}{RESET}")
        else:
            print(f"{GREEN}{result.message}{RESET}")

    @staticmethod
    def report_error(error: Exception):
        print(f"{RED}❌ Error: {error}{RESET}")

    def handle_command(self, line: str) -> bool:
        """
        Run a session command ('load', 'save', 'exit') if line is one.

        Returns:
            bool: True if the line was a session command and has been handled.
        """
        if not is_session_command(line):
            return False
        parts = line.split(maxsplit=1)
        command = parts[0].lower()
        argument = parts[1].strip().strip("'\"") if len(parts) > 1 else ""

        if command == "exit":
            self.exit()
        elif not argument:
            self.report_error(StorageError(f"Usage: {command} <path>"))
        elif command == "load":
            self.load(argument)
        else:
            self.save(argument)
        return True

    def load(self, path: str) -> list[Outcome]:
        """
        Execute the statements stored in a file, one after another.

        A failing statement is reported and the rest of the file still runs;
        if anything failed, the resulting catalog is shown.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as error:
            self.report_error(StorageError(f"Cannot load '{path}': {error.strerror or error}"))
            return []

        print(f"📂 Loading statements from {path}")
        outcomes = self.submit(content)
        failed = sum(1 for outcome in outcomes if not outcome.ok)
        if failed:
            print(f"{YELLOW}{failed} of {len(outcomes)} statement(s) failed; current state:{RESET}")
            print(render_snapshot(self.schema, self.config.column_width))
        return outcomes

    def save(self, path: str) -> bool:
        """Write the snapshot render to path; errors are reported, not raised."""
        try:
            save_snapshot(self.schema, path, self.config.column_width)
        except StorageError as error:
            self.report_error(error)
            return False
        print(f"💾 Snapshot saved to {path}")
        return True

    def exit(self):
        """Render the final snapshot once, save the backup if configured, and stop."""
        if not self.running:
            return
        self.running = False
        print(render_snapshot(self.schema, self.config.column_width))
        if self.config.backup_path:
            print("\n💾 Saving all tables...")
            # A failed final save is reported; the session still ends
            self.save(self.config.backup_path)


def parse_args(argv=None) -> argparse.Namespace:
    arg_parser = argparse.ArgumentParser(
        description="Interactive REPL for the Simple-RelStore command language"
    )
    arg_parser.add_argument(
        "-l", "--load",
        help="Execute statements from a file before the prompt starts",
    )
    arg_parser.add_argument(
        "-b", "--backup",
        help="File the snapshot is saved to on exit (empty string disables it)",
    )
    arg_parser.add_argument(
        "-w", "--width",
        type=int,
        help="Width of each field in rendered tables",
    )
    return arg_parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point: initialize components and start the REPL."""
    args = parse_args(argv)
    try:
        config = Config.from_env()
    except ValueError as error:
        print(f"{RED}❌ Error: {error}{RESET}", file=sys.stderr)
        return 2
    if args.backup is not None:
        config.backup_path = args.backup or None
    if args.width is not None:
        config.column_width = max(1, args.width)

    # Startup banner
    print("📦 Simple-RelStore started")
    print("ℹ️  Enter statements, then an empty line to run them. "
          "Type 'load <path>', 'save <path>' or 'exit'.\n")

    session = Session(config)
    if args.load:
        session.load(args.load)

    # Read-Eval-Print Loop: lines are buffered until an empty line
    buffer: list[str] = []
    while session.running:
        try:
            line = input(PROMPT)
        except EOFError:
            break
        except KeyboardInterrupt:
            # Handle Ctrl+C gracefully
            print()
            buffer = []
            break

        if is_session_command(line):
            # Statements typed before the command run first
            if buffer:
                session.submit("\n".join(buffer))
                buffer = []
            session.handle_command(line)
            continue
        if line.strip():
            buffer.append(line)
            continue
        if buffer:
            session.submit("\n".join(buffer))
            buffer = []

    if buffer:
        session.submit("\n".join(buffer))
    session.exit()
    print("👋 Exiting Simple-RelStore. Goodbye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
