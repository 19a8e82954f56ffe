import argparse
import logging
import os
import stat
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import List, Optional, Sequence

from .ctx import get_ctx
from .dialects import SHELLS, get_shell
from .serde import Fmt
from .shell import ShellOutput
from .srv import load_tree

try:
    __version__ = version("cmd_sh")
except PackageNotFoundError:
    __version__ = "unknown"

DEFAULT_URL = "http://localhost/"


def render(
    tree: str,
    tokens: Sequence[str],
    shell_name: str = "zsh",
    url: str = DEFAULT_URL,
    fmt: Fmt = Fmt.yaml,
    snippet_base: Optional[List[str]] = None,
) -> str:
    """
    Dispatch `tokens` against the command tree declared in `tree` and return
    the script for `shell_name`.
    """
    root = load_tree(tree, fmt, snippet_base=snippet_base)
    client = ShellOutput(get_shell(shell_name))
    return root.process(list(tokens), client, get_ctx(url))


def main(
    tree_path: Optional[str],
    outfile_path: str,
    tokens: Sequence[str],
    shell_name: str = "zsh",
    url: str = DEFAULT_URL,
    snippets: Optional[str] = None,
) -> None:
    if tree_path is None:
        for filename in ["cmd.yaml", "cmd.yml", "cmd.json"]:
            if os.path.isfile(filename):
                tree_path = filename
                break

    logging.info(
        f"""Rendering {shell_name} script: `{
            tree_path if tree_path not in (None, '-') else 'stdin'
        }` -> `{
            outfile_path if outfile_path != '-' else 'stdout'
        }`"""
    )

    if tree_path is None or tree_path == "-":
        tree_data = sys.stdin.read()
    else:
        with open(tree_path) as f:
            tree_data = f.read()

    fmt = Fmt.yaml
    if tree_path is not None and tree_path.endswith(".json"):
        fmt = Fmt.json
    script = render(
        tree_data,
        tokens,
        shell_name=shell_name,
        url=url,
        fmt=fmt,
        snippet_base=[snippets] if snippets else None,
    )

    if outfile_path == "-":
        sys.stdout.write(script)
    else:
        with open(outfile_path, "w") as f:
            f.write(script)
        os.chmod(outfile_path, os.stat(outfile_path).st_mode | stat.S_IEXEC)


def cli_entrypoint() -> None:
    parser = argparse.ArgumentParser(
        description="Dispatch a command line against a command tree and render "
        "the result as a shell script",
        epilog="Put `--` before a command line that starts with a flag, "
        "for example `cmd-sh -- -h`.",
    )
    parser.add_argument(
        "-i", "--infile", action="store", help="Command tree path (YAML or JSON)"
    )
    parser.add_argument(
        "-o",
        "--outfile",
        action="store",
        default="-",
        help="Output script path",
    )
    parser.add_argument(
        "-s",
        "--shell",
        action="store",
        choices=list(SHELLS),
        default="zsh",
        help="Target shell",
    )
    parser.add_argument(
        "-c",
        "--context",
        action="store",
        default=DEFAULT_URL,
        help="Request URL the context record is built from",
    )
    parser.add_argument(
        "--snippets",
        action="store",
        help="Directory holding the cli/<shell>/ snippet files",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--version", action="store_true", help="Print version string")
    parser.add_argument(
        "tokens", nargs=argparse.REMAINDER, help="Command line to dispatch"
    )
    parsed_args = parser.parse_args()

    if parsed_args.version:
        print(f"cmd.sh  command tree to shell script renderer (version {__version__})")
        return

    logging.basicConfig(
        format="%(levelname)s: %(message)s",
        level=logging.DEBUG if parsed_args.verbose else logging.INFO,
    )

    tokens = parsed_args.tokens
    if tokens and tokens[0] == "--":
        tokens = tokens[1:]

    main(
        parsed_args.infile,
        parsed_args.outfile,
        tokens,
        shell_name=parsed_args.shell,
        url=parsed_args.context,
        snippets=parsed_args.snippets,
    )


if __name__ == "__main__":
    cli_entrypoint()
