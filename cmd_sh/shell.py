import logging
import os.path
from typing import Callable, List, Optional, Sequence, Union

from .env import KeyType, to_key

LinesType = Union[str, List[str]]
Loader = Callable[[str], Optional[str]]

# Opcodes prefixed onto printed lines. Each is a function defined by the
# per-shell prelude that applies the channel's color and formatting.
OP_PRINT = "opPrint"
OP_PRINT_CMD = "opPrintCmd"
OP_PRINT_ERR = "opPrintErr"
OP_PRINT_INFO = "opPrintInfo"
OP_PRINT_SUCC = "opPrintSucc"
OP_PRINT_WARN = "opPrintWarn"


def as_lines(lines: LinesType) -> List[str]:
    if isinstance(lines, str):
        return [lines]
    return list(lines)


def var_name(key: KeyType) -> str:
    if isinstance(key, str):
        return to_key(key)
    return to_key(*key)


class ShellBackend:
    """
    The statement syntax and quoting rules of one target shell. Backends hold no
    state beyond their identity, so one instance can serve any number of
    outputs.
    """

    name: str = ""
    extension: str = ""

    @staticmethod
    def exec_str(value: str) -> str:
        raise NotImplementedError()

    def gated_func(self, name: str, lines: List[str]) -> List[str]:
        raise NotImplementedError()

    def to_inner(self, value: str) -> str:
        """
        Return a string literal that reproduces `value` byte for byte when it
        is pasted into generated code.
        """
        raise NotImplementedError()

    def to_outer(self, value: str) -> str:
        """
        Return `value` wrapped for interpolation, e.g. as the body of a later
        command substitution. Embedded quotes are not escaped.
        """
        raise NotImplementedError()

    def trace(self) -> str:
        raise NotImplementedError()

    def var_set(self, key: KeyType, value: str) -> str:
        raise NotImplementedError()

    def var_set_arr(self, key: KeyType, values: Sequence[str]) -> str:
        raise NotImplementedError()

    def var_unset(self, key: KeyType) -> str:
        raise NotImplementedError()


def to_print(shell: ShellBackend, lines: LinesType, op: str) -> List[str]:
    return [f"{op} {shell.to_inner(line)}" for line in as_lines(lines)]


def read_file(path: str) -> Optional[str]:
    if not os.path.isfile(path):
        return None
    with open(path) as f:
        return f.read()


def file_load(
    shell: ShellBackend,
    parts: Sequence[str],
    loader: Optional[Loader] = None,
    base: Optional[Sequence[str]] = None,
) -> str:
    """
    Load a snippet from `<base>/cli/<shell name>/<parts>` with the shell's file
    extension appended if it is not there already. Missing files load as the
    empty string.
    """
    path = "/".join([*(base if base is not None else ["."]), "cli", shell.name, *parts])
    if not path.endswith(f".{shell.extension}"):
        path = f"{path}.{shell.extension}"
    content = (loader or read_file)(path)
    if content is None:
        logging.debug(f"No snippet at {path}")
        return ""
    return content


class ShellOutput:
    """
    Ordered buffer of line groups for one shell. Groups are only ever appended;
    `build` renders each group followed by a blank line.
    """

    def __init__(self, shell: ShellBackend) -> None:
        self.shell = shell
        self.lines: List[LinesType] = []

    @property
    def name(self) -> str:
        return self.shell.name

    @property
    def extension(self) -> str:
        return self.shell.extension

    def add(self, lines: LinesType) -> "ShellOutput":
        self.lines.append(lines)
        return self

    def build(self) -> str:
        lines: List[str] = []
        for group in self.lines:
            lines += as_lines(group)
            lines.append("")
        return "\n".join(lines)

    def print(self, lines: LinesType) -> List[str]:
        return to_print(self.shell, lines, OP_PRINT)

    def print_cmd(self, lines: LinesType) -> List[str]:
        return to_print(self.shell, lines, OP_PRINT_CMD)

    def print_err(self, lines: LinesType) -> List[str]:
        return to_print(self.shell, lines, OP_PRINT_ERR)

    def print_info(self, lines: LinesType) -> List[str]:
        return to_print(self.shell, lines, OP_PRINT_INFO)

    def print_succ(self, lines: LinesType) -> List[str]:
        return to_print(self.shell, lines, OP_PRINT_SUCC)

    def print_warn(self, lines: LinesType) -> List[str]:
        return to_print(self.shell, lines, OP_PRINT_WARN)
