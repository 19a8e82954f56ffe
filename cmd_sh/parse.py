import argparse
import dataclasses
import json
from dataclasses import dataclass
from typing import Callable, List, Sequence, cast

from parsy import (
    ParseError,
    Parser,
    eof,
    regex,
    seq,
    whitespace,
)
from parsy import (
    string as strp,
)


@dataclass
class Argument:
    name: str
    description: str = ""
    required: bool = False


@dataclass
class Flag:
    keys: List[str]
    description: str = ""


def surround(p: Parser) -> Callable[[Parser], Parser]:
    def result(p2: Parser) -> Parser:
        return p >> p2 << p

    return result


lex = surround(whitespace.optional())

# Tokens
SHORTHAND = (strp("-") >> regex(r"[^-]").at_least(2) << eof).map(
    lambda chars: [f"-{c}" for c in chars]
)
FLAG_KEY = regex(r"--?[^\s,|-][^\s,|]*")
NAME = regex(r"[^\s<>\[\]|]+")
DESCRIPTION = (lex(strp("|")) >> regex(r".*")).optional("")

# Declarations use the same text that help output renders, e.g. `<name> | desc`
# for a required argument or `-f, --format | desc` for a flag
required_argument = (strp("<") >> lex(NAME) << strp(">")).map(lambda n: (n, True))
optional_argument = (strp("[") >> lex(NAME) << strp("]")).map(lambda n: (n, False))
argument = (
    seq(lex(required_argument | optional_argument), DESCRIPTION).combine(
        lambda name, description: Argument(
            name[0], description.strip(), required=name[1]
        )
    )
    << eof
)
flag = (
    seq(lex(FLAG_KEY.sep_by(lex(strp(",")), min=1)), DESCRIPTION).combine(
        lambda keys, description: Flag(keys, description.strip())
    )
    << eof
)


def expand_parts(parts: Sequence[str]) -> List[str]:
    """
    Split shorthand flag clusters into one flag per character, so that `-abc`
    becomes `-a -b -c`. Long flags and the bare `--` pass through.
    """
    expanded: List[str] = []
    for part in parts:
        try:
            expanded += SHORTHAND.parse(part)
        except ParseError:
            expanded.append(part)
    return expanded


def parse_argument(declaration: str) -> Argument:
    try:
        return cast(Argument, argument.parse(declaration.strip()))
    except ParseError as e:
        raise ValueError(f"Bad argument declaration `{declaration}`: {e}") from e


def parse_flag(declaration: str) -> Flag:
    try:
        return cast(Flag, flag.parse(declaration.strip()))
    except ParseError as e:
        raise ValueError(f"Bad flag declaration `{declaration}`: {e}") from e


def main(declarations: List[str], arguments: bool = False) -> None:
    parse_function = parse_argument if arguments else parse_flag
    print(
        json.dumps(
            [dataclasses.asdict(parse_function(d)) for d in declarations], indent=2
        )
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Parse flag or argument declarations")
    parser.add_argument("declarations", nargs="+", help="Declarations to parse")
    parser.add_argument(
        "-a",
        "--arguments",
        action="store_true",
        help="Parse positional argument declarations instead of flags",
    )
    parsed_args = parser.parse_args()

    main(parsed_args.declarations, arguments=parsed_args.arguments)
