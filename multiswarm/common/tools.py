# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import collections
import itertools
import typing as tp


def unordered_pairs(items: tp.Sequence[tp.Any]) -> tp.Iterator[tp.Tuple[tp.Any, tp.Any]]:
    """Iterates over the unordered pairs of the sequence, in index order:
    s -> (s0, s1), (s0, s2), ..., (s1, s2), ...
    Nothing is returned for fewer than 2 items.
    """
    return itertools.combinations(items, 2)


def round_half_up(value: float) -> int:
    """Rounds to the nearest integer, halves away from zero
    (the builtin "round" rounds halves to the even integer)
    """
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


X = tp.TypeVar("X", bound=tp.Hashable)


class OrderedSet(tp.MutableSet[X]):
    """Set iterating over its elements in insertion order
    """

    def __init__(self, keys: tp.Optional[tp.Iterable[X]] = None) -> None:
        self._data: "collections.OrderedDict[X, None]" = collections.OrderedDict()
        for key in keys or ():
            self.add(key)

    def add(self, key: X) -> None:
        self._data[key] = None

    def discard(self, key: X) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: tp.Any) -> bool:
        return key in self._data

    def __iter__(self) -> tp.Iterator[X]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)
