from typing import Any, Dict, List, Optional

from .cmd import Command
from .ctx import Context, with_ctx
from .env import Env
from .parse import Flag, parse_argument, parse_flag
from .serde import Fmt
from .serde import parse as serde_parse
from .shell import Loader, ShellOutput, file_load


def standard_options() -> List[Flag]:
    formats = ", ".join(
        f.value if i == 0 else f"[{f.value}]" for i, f in enumerate(Fmt)
    )
    return [Flag(["-f", "--format"], f"client print format <{formats}>")]


def standard_switches() -> List[Flag]:
    return [
        Flag(["-d", "--debug"], "client print debug"),
        Flag(["-g", "--grayscale"], "client print skip color"),
        Flag(["-h", "--help"], "client print help"),
        Flag(["-l", "--log"], "server print log"),
        Flag(["-n", "--noop"], "client run skip"),
        Flag(["-s", "--succinct"], "client print skip"),
        Flag(["-t", "--trace"], "client print trace"),
        Flag(["-y", "--yes"], "client run skip prompt"),
    ]


class ServerCommand(Command):
    """
    Command carrying the flags every served command understands: output format,
    debug dumps, help, tracing, and prompt skipping.
    """

    def __init__(
        self,
        scopes: Optional[List[str]] = None,
        standard: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(scopes, **kwargs)
        if standard:
            self.options = standard_options()
            self.switches = standard_switches()


class TreeCommand(ServerCommand):
    """
    Command built from a declaration document. Its work renders the declared
    `lines` followed by the shell-specific `snippet`, optionally behind a
    confirmation prompt.
    """

    def __init__(
        self,
        scopes: Optional[List[str]] = None,
        lines: Optional[List[str]] = None,
        snippet: Optional[str] = None,
        gated: bool = False,
        loader: Optional[Loader] = None,
        snippet_base: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(scopes, **kwargs)
        self.lines: List[str] = list(lines) if lines is not None else []
        self.snippet = snippet
        self.gated = gated
        self.loader = loader
        self.snippet_base = snippet_base

    def work(self, client: ShellOutput, context: Context, environment: Env) -> str:
        lines = [with_ctx(line, context) for line in self.lines]
        if self.snippet:
            content = file_load(
                client.shell,
                self.snippet.split("/"),
                loader=self.loader,
                base=self.snippet_base,
            )
            lines += [with_ctx(line, context) for line in content.splitlines()]
        if not lines:
            return self.help(client, environment)
        if self.gated:
            shell = client.shell
            lines = shell.gated_func(self.name, lines)
            # The gate only reads the unscoped YES
            if self.lookup(environment, "yes"):
                lines = [shell.var_set("yes", shell.to_inner("1")), *lines]
        return client.add(lines).build()


def build_tree(
    data: Dict[str, Any],
    scopes: Optional[List[str]] = None,
    loader: Optional[Loader] = None,
    snippet_base: Optional[List[str]] = None,
) -> TreeCommand:
    """
    Build a command tree from a mapping of declarations. Each child is scoped
    under its parent's name.
    """
    if not isinstance(data, dict) or not data.get("name"):
        raise ValueError(f"Command declarations need a name, got: {data!r}")
    scopes = scopes if scopes is not None else []
    command = TreeCommand(
        scopes,
        name=str(data["name"]),
        description=str(data.get("description") or ""),
        aliases=[str(a) for a in data.get("aliases") or []],
        standard=bool(data.get("standard", True)),
        lines=[str(line) for line in data.get("lines") or []],
        snippet=str(data["snippet"]) if data.get("snippet") else None,
        gated=bool(data.get("gated", False)),
        loader=loader,
        snippet_base=snippet_base,
    )
    command.arguments += [parse_argument(a) for a in data.get("arguments") or []]
    command.options += [parse_flag(o) for o in data.get("options") or []]
    command.switches += [parse_flag(s) for s in data.get("switches") or []]
    command.commands = [
        build_tree(
            child,
            [*scopes, command.name],
            loader=loader,
            snippet_base=snippet_base,
        )
        for child in data.get("commands") or []
    ]
    command.validate()
    return command


def load_tree(
    text: str,
    fmt: Fmt = Fmt.yaml,
    loader: Optional[Loader] = None,
    snippet_base: Optional[List[str]] = None,
) -> TreeCommand:
    data = serde_parse(text, fmt)
    if data is None:
        raise ValueError("Empty command tree")
    return build_tree(data, loader=loader, snippet_base=snippet_base)
