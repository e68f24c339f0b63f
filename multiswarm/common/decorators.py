# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import typing as tp


X = tp.TypeVar("X")


class Registry(tp.MutableMapping[str, X]):
    """Maps names to solver classes (or any callable).
    Use :code:`register` as a class decorator, the registered name being the
    :code:`short_name` class attribute if any, or the class name otherwise.
    """

    def __init__(self) -> None:
        super().__init__()
        self.data: tp.Dict[str, X] = {}

    def register(self, obj: X) -> X:
        name = getattr(obj, "short_name", None) or getattr(obj, "__name__", obj.__class__.__name__)
        self.register_name(name, obj)
        return obj

    def register_name(self, name: str, obj: X) -> None:
        if name in self.data:
            raise RuntimeError(f'Encountered a name collision "{name}"')
        self.data[name] = obj

    def __getitem__(self, key: str) -> X:
        if key not in self.data:
            raise KeyError(f'"{key}" is not registered (available: {sorted(self.data)}).')
        return self.data[key]

    def __setitem__(self, key: str, value: X) -> None:
        self.data[key] = value

    def __delitem__(self, key: str) -> None:
        del self.data[key]

    def __iter__(self) -> tp.Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)
