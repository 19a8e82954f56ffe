import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from .ctx import Context
from .env import Env
from .parse import Argument, Flag, expand_parts
from .serde import stringify, to_fmt
from .shell import ShellOutput


def flag_field(flag: Flag) -> str:
    """
    Name of the environment field a flag binds: its long key without the
    leading dashes, or its first key if it has no long form.
    """
    for key in flag.keys:
        if key.startswith("--"):
            return key[2:]
    return flag.keys[0].lstrip("-") if flag.keys else ""


def find_flag(flags: Sequence[Flag], part: str) -> Optional[Flag]:
    for flag in flags:
        if part in flag.keys:
            return flag
    return None


class Command:
    """
    One node of a declarative command tree. The node's declared arguments,
    options, switches, and child commands define which tokens `process`
    accepts; everything it binds lands in the shared `Env`.
    """

    name: str = ""
    description: str = ""

    def __init__(
        self,
        scopes: Optional[List[str]] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        aliases: Optional[List[str]] = None,
    ) -> None:
        self.scopes: List[str] = list(scopes) if scopes is not None else []
        if name is not None:
            self.name = name
        if description is not None:
            self.description = description
        self.aliases: List[str] = list(aliases) if aliases is not None else []
        self.arguments: List[Argument] = []
        self.options: List[Flag] = []
        self.switches: List[Flag] = []
        self.commands: List["Command"] = []

    def full_key(self, field: str) -> List[str]:
        # The root program name is never part of a key
        return [*self.scopes, self.name, field][1:]

    def lookup(self, environment: Env, field: str) -> Optional[str]:
        """
        Value of `field` bound at this node's scope, falling back to the
        nearest ancestor that bound it.
        """
        path = self.full_key(field)[:-1]
        for end in range(len(path), -1, -1):
            value = environment.get([*path[:end], field])
            if value is not None:
                return value
        return None

    def matches(self, part: str) -> bool:
        return part == self.name or part in self.aliases

    def validate(self) -> None:
        seen = set()
        for flag in self.switches + self.options:
            for key in flag.keys:
                if key in seen:
                    raise ValueError(f"Flag {key} declared twice in `{self.name}`")
                seen.add(key)

        seen_arguments = set()
        optional_seen = False
        for argument in self.arguments:
            if argument.name in seen_arguments:
                raise ValueError(
                    f"Argument {argument.name} declared twice in `{self.name}`"
                )
            seen_arguments.add(argument.name)
            if argument.required and optional_seen:
                logging.warning(
                    f"Required argument {argument.name} of `{self.name}` follows an "
                    f"optional argument and will not be checked when input runs out "
                    f"before it."
                )
            optional_seen = optional_seen or not argument.required

        seen_names: Dict[str, str] = dict()
        for command in self.commands:
            for name in [command.name, *command.aliases]:
                if name in seen_names:
                    raise ValueError(
                        f"`{name}` names both `{seen_names[name]}` and "
                        f"`{command.name}` in `{self.name}`"
                    )
                seen_names[name] = command.name

    def to_serializable(self) -> Dict[str, Any]:
        content: Dict[str, Any] = {
            "id": f"{' '.join([*self.scopes, self.name])} | {self.description}",
        }
        if self.aliases:
            content["aliases"] = ", ".join(self.aliases)
        if self.arguments:
            content["arguments"] = [
                (f"<{a.name}>" if a.required else f"[{a.name}]")
                + f" | {a.description}"
                for a in self.arguments
            ]
        if self.options:
            content["options"] = [
                f"{', '.join(o.keys)} | {o.description}"
                for o in sorted(self.options, key=lambda o: o.keys[0])
            ]
        if self.switches:
            content["switches"] = [
                f"{', '.join(s.keys)} | {s.description}"
                for s in sorted(self.switches, key=lambda s: s.keys[0])
            ]
        if self.commands:
            content["commands"] = ", ".join(c.name for c in self.commands)
        return content

    def help(self, client: ShellOutput, environment: Env) -> str:
        body = client.add(
            client.print_info(
                stringify(
                    self.to_serializable(),
                    to_fmt(self.lookup(environment, "format") or ""),
                )
            )
        ).build()

        if self.lookup(environment, "log"):
            logging.info(body)

        return body

    def work(self, client: ShellOutput, context: Context, environment: Env) -> str:
        return self.help(client, environment)

    def process(
        self,
        parts: Sequence[str],
        client: ShellOutput,
        context: Context,
        environment: Optional[Env] = None,
    ) -> str:
        """
        Consume `parts` against this node's declared surface and return the
        rendered script. Tokens are matched in priority order: switch, option
        with its value, child command, positional argument. Anything left over
        renders help instead of raising.
        """
        parts = expand_parts(parts)
        env = environment if environment is not None else Env()

        def load_env(terminal: Callable[[], str]) -> str:
            for key, value in env.store.items():
                client.add(client.shell.var_set(key, client.shell.to_inner(value)))

            if self.lookup(env, "debug"):
                client.add(
                    client.print(
                        stringify(
                            {
                                "debug": {
                                    "context": context.to_dict(),
                                    "environment": env.to_dict(),
                                }
                            },
                            to_fmt(self.lookup(env, "format") or ""),
                        )
                    )
                )

            if self.lookup(env, "trace"):
                client.add(client.shell.trace())

            return terminal()

        def render_help() -> str:
            return load_env(lambda: self.help(client, env))

        parts_index = 0
        argument_index = 0

        while parts_index < len(parts):
            part = parts[parts_index]

            if part.startswith("-") and part != "--":
                switch = find_flag(self.switches, part)
                if switch:
                    env.set(self.full_key(flag_field(switch)), "1")
                    parts_index += 1
                    continue
                option = find_flag(self.options, part)
                if option and parts_index + 1 < len(parts):
                    if parts[parts_index + 1].startswith("-"):
                        logging.debug(f"Option {part} is missing its value")
                        return render_help()
                    env.set(
                        self.full_key(flag_field(option)), parts[parts_index + 1]
                    )
                    parts_index += 2
                    continue

            if self.commands:
                command = next((c for c in self.commands if c.matches(part)), None)
                if command:
                    return command.process(
                        parts[parts_index + 1 :], client, context, env
                    )

            if self.arguments:
                if argument_index == len(self.arguments):
                    env.set_append(
                        self.full_key(self.arguments[argument_index - 1].name), part
                    )
                else:
                    env.set(
                        self.full_key(self.arguments[argument_index].name), part
                    )
                    argument_index += 1
                parts_index += 1
                continue

            logging.debug(f"Unexpected token `{part}` for `{self.name}`")
            return render_help()

        # Only arguments from the resting index onward are checked
        while argument_index < len(self.arguments):
            if self.arguments[argument_index].required:
                return render_help()
            argument_index += 1

        if self.lookup(env, "help"):
            return render_help()

        return load_env(lambda: self.work(client, context, env))


