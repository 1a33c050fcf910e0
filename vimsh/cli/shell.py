"""Interactive read-eval loop over the modal commands."""

from __future__ import annotations

import shlex
import sys
from pathlib import Path

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import FileHistory

from ..config import default_history_path
from ._common import _BaseCommand, current_config, current_session, log

EXIT_WORDS = ('exit', 'quit')


class CommandCompleter(Completer):
    """Completes the command word: aliases, modules, and ``module.command``."""

    def __init__(self, words):
        self.words = sorted(set(words))

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if ' ' in text.lstrip():
            return
        word = text.lstrip()
        for cmd in self.words:
            if cmd.startswith(word):
                yield Completion(cmd, start_position=-len(word))


def command_words() -> list[str]:
    from .main import ALIASES, MODULES, module_commands

    words = [*ALIASES, *MODULES, *EXIT_WORDS]
    for module in MODULES:
        words.extend(f'{module}.{name}' for name in module_commands(module))
    return words


def execute_line(line: str) -> int | None:
    """
    Run one shell line. Returns the command's exit code, 0 for a blank
    line, or None when the line asks to leave the shell.
    """
    from .main import VimshModalCLI, _normalize_argv

    try:
        argv = shlex.split(line)
    except ValueError as ex:
        print(f'ERROR: {ex}', file=sys.stderr)
        return 2
    if not argv:
        return 0
    if argv[0] in EXIT_WORDS:
        return None
    argv = _normalize_argv(argv)
    if argv[0] == 'shell':
        print('ERROR: already in the shell', file=sys.stderr)
        return 2
    try:
        rc = VimshModalCLI.main(argv=argv, _noexit=True)
    except SystemExit as ex:
        # argparse usage errors and --help
        return ex.code if isinstance(ex.code, int) else 2
    except Exception as ex:
        from .main import _error_text

        print(f'ERROR: {_error_text(ex)}', file=sys.stderr)
        log.debug('Command {!r} failed: {!r}', line, ex)
        return 2
    return rc if isinstance(rc, int) else 0


class ShellCLI(_BaseCommand):
    """Start the interactive shell (default with no arguments)."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg = current_config(args.config)
        session = current_session(args.config)
        history_path = Path(cfg.shell.history_file or default_history_path())
        history_path.parent.mkdir(parents=True, exist_ok=True)
        prompt = PromptSession(
            history=FileHistory(str(history_path)),
            auto_suggest=AutoSuggestFromHistory(),
            completer=CommandCompleter(command_words()),
            complete_while_typing=True,
        )
        while True:
            try:
                line = prompt.prompt(f'{cfg.shell.prompt}:{session.cwd.path_str}> ')
            except KeyboardInterrupt:
                print("Use 'exit' or 'quit' to leave")
                continue
            except EOFError:
                break
            if execute_line(line) is None:
                break
        return 0
