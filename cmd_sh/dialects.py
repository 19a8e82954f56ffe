from typing import Dict, List, Sequence, Type

from .env import KeyType
from .shell import ShellBackend, var_name

# Structured code of the nushell error raised when an external command exits
# non-zero. Gated blocks absorb this error and re-raise everything else.
NU_NON_ZERO_EXIT = "nu::shell::non_zero_exit_code"

# PowerShell treats the typographic single quotes as quote characters too
PWSH_SINGLE_QUOTES = "'‘’‚‛"


def quote_string(instring: str, quote: str = "'") -> str:
    if quote != "'" and quote != '"':
        raise ValueError("Expecting single or double quotes!")
    if quote == "'":
        replaced = instring.replace("'", "'\"'\"'")
    else:
        replaced = instring.replace('"', '"\'"\'"')
    return quote + replaced + quote


def prompt(name: str) -> str:
    return f"? {name} [y, [n]]: "


class Nushell(ShellBackend):
    name = "nu"
    extension = "nu"

    @staticmethod
    def exec_str(value: str) -> str:
        return f"nu --no-config-file -c {value}"

    def gated_func(self, name: str, lines: List[str]) -> List[str]:
        return [
            "do {",
            "  try {",
            "    mut yn = ''",
            "    if 'YES' in $env {",
            "      $yn = 'y'",
            "    } else {",
            f"      $yn = (input {self.to_inner(prompt(name))} | str trim)",
            "    }",
            "    if $yn != 'n' {",
            *lines,
            "    }",
            "  } catch { |e|",
            f"    if ($e.json | from json | get code?) != '{NU_NON_ZERO_EXIT}' {{",
            "      error make { msg: $e.msg }",
            "    }",
            "  }",
            "}",
        ]

    def to_inner(self, value: str) -> str:
        # A raw string ends at the first quote followed by as many hashes as
        # it was opened with
        hashes = "#"
        while f"'{hashes}" in value:
            hashes += "#"
        return f"r{hashes}'{value}'{hashes}"

    def to_outer(self, value: str) -> str:
        return f"`{value}`"

    def trace(self) -> str:
        # No equivalent of command echoing
        return ""

    def var_set(self, key: KeyType, value: str) -> str:
        return f"$env.{var_name(key)} = {value}"

    def var_set_arr(self, key: KeyType, values: Sequence[str]) -> str:
        return f"$env.{var_name(key)} = [ {', '.join(values)} ]"

    def var_unset(self, key: KeyType) -> str:
        return f"hide-env {var_name(key)}"


class Powershell(ShellBackend):
    name = "pwsh"
    extension = "ps1"

    @staticmethod
    def exec_str(value: str) -> str:
        return f"pwsh -noprofile -c {value}"

    def gated_func(self, name: str, lines: List[str]) -> List[str]:
        # Read-Host appends its own ": " to the prompt
        return [
            "& {",
            "  $yn = ''",
            "  if ($YES) {",
            "    $yn = 'y'",
            "  } else {",
            f"    $yn = Read-Host {self.to_inner(prompt(name)[:-2])}",
            "  }",
            "  if ($yn -ne 'n') {",
            *lines,
            "  }",
            "}",
        ]

    def to_inner(self, value: str) -> str:
        escaped = "".join(c * 2 if c in PWSH_SINGLE_QUOTES else c for c in value)
        return f"'{escaped}'"

    def to_outer(self, value: str) -> str:
        return f"'{value}'"

    def trace(self) -> str:
        return "Set-PSDebug -Trace 1"

    def var_set(self, key: KeyType, value: str) -> str:
        return f"${var_name(key)} = {value}"

    def var_set_arr(self, key: KeyType, values: Sequence[str]) -> str:
        return f"${var_name(key)} = @( {', '.join(values)} )"

    def var_unset(self, key: KeyType) -> str:
        return f"Remove-Variable {var_name(key)} -ErrorAction SilentlyContinue"


class Zshell(ShellBackend):
    name = "zsh"
    extension = "zsh"

    @staticmethod
    def exec_str(value: str) -> str:
        return f"zsh --no-rcs -c {value}"

    def gated_func(self, name: str, lines: List[str]) -> List[str]:
        return [
            "function () {",
            "  local yn=''",
            "  if [[ $YES ]]; then",
            "    yn='y'",
            "  else",
            f"    read {quote_string('yn?' + prompt(name))}",
            "  fi",
            "  if [[ $yn != 'n' ]]; then",
            *lines,
            "  fi",
            "}",
        ]

    def to_inner(self, value: str) -> str:
        # Backslashes are doubled because printed lines go through `print`,
        # which interprets escape sequences
        return "'" + value.replace("\\", "\\\\").replace("'", "'\\''") + "'"

    def to_outer(self, value: str) -> str:
        return f"'{value}'"

    def trace(self) -> str:
        return "set -x"

    def var_set(self, key: KeyType, value: str) -> str:
        return f"{var_name(key)}={value}"

    def var_set_arr(self, key: KeyType, values: Sequence[str]) -> str:
        return f"{var_name(key)}=( {' '.join(values)} )"

    def var_unset(self, key: KeyType) -> str:
        return f"unset {var_name(key)}"


SHELLS: Dict[str, Type[ShellBackend]] = {
    shell.name: shell for shell in (Nushell, Powershell, Zshell)
}


def get_shell(name: str) -> ShellBackend:
    if name not in SHELLS:
        raise ValueError(
            f"Unsupported shell `{name}`, expected one of: {', '.join(SHELLS)}"
        )
    return SHELLS[name]()
