from typing import Dict, List, Optional, Sequence, Union

SPLIT_KEY = "_"
SPLIT_VAL = " "

KeyType = Union[str, Sequence[str]]


def to_key(*parts: str) -> str:
    # Dashes are not valid in variable names of any supported shell
    return SPLIT_KEY.join(parts).replace("-", SPLIT_KEY).upper()


def _key(key: KeyType) -> str:
    if isinstance(key, str):
        return to_key(key)
    return to_key(*key)


class Env:
    """
    Flat mapping from upper-cased key paths to string values. One instance is
    created per invocation and mutated in place by every command it passes
    through.
    """

    def __init__(self) -> None:
        self.store: Dict[str, str] = dict()

    def get(self, key: KeyType) -> Optional[str]:
        return self.store.get(_key(key))

    def get_split(self, key: KeyType) -> List[str]:
        value = self.get(key)
        if not value:
            return []
        return value.split(SPLIT_VAL)

    def set(self, key: KeyType, value: str) -> None:
        self.store[_key(key)] = value

    def set_append(self, key: KeyType, value: str) -> None:
        current = self.get(key)
        if current:
            self.set(key, f"{current}{SPLIT_VAL}{value}")
        else:
            self.set(key, value)

    def to_dict(self) -> Dict[str, str]:
        return dict(self.store)
