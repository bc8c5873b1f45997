"""
Funding distributions: how many wallets to create and which UTxOs to fund them with.

The shape of the request decides the shape of the result:

    None                         -> None
    [a, b, ...]                  -> KeyWallet
    [[a, b], [c], ...]           -> list[KeyWallet]
    {"alice": [a], "bob": [b]}   -> dict[str, KeyWallet]

`resolve_distribution` picks the variant once; the variant then both encodes the request for the
emulator and decodes the returned keys.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from ctl_cluster.errors import KeyDecodeError
from ctl_cluster.wallet import KeyWallet


def _check_amounts(amounts: Any) -> list[int]:
    if not isinstance(amounts, (list, tuple)):
        raise TypeError(f"UTxO amounts must be a list of ints, got {type(amounts).__name__}")
    for amount in amounts:
        # bool is an int subclass, reject it explicitly
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TypeError(f"UTxO amount must be an int (lovelace), got {amount!r}")
    return list(amounts)


class UtxoDistribution(ABC):
    """Base class of all distribution shapes."""

    @abstractmethod
    def encode(self) -> list[list[int]]:
        """Per-wallet UTxO amounts, in the form the emulator's `/start` expects."""

    @abstractmethod
    def _wallets_from_keys(self, keys: list[str]) -> Any: ...

    @property
    def wallet_count(self) -> int:
        return len(self.encode())

    def decode_wallets(self, keys: Sequence[str]) -> Any:
        """
        Turn the keys returned by the emulator into wallets of the requested shape.

        Raises:
            KeyDecodeError: If the number of keys doesn't match or a key can't be decoded
        """
        if len(keys) != self.wallet_count:
            raise KeyDecodeError(
                f"requested {self.wallet_count} wallet(s) but received {len(keys)} key(s)"
            )
        return self._wallets_from_keys(list(keys))


class NoWallets(UtxoDistribution):
    def encode(self) -> list[list[int]]:
        return []

    def _wallets_from_keys(self, keys: list[str]) -> None:
        return None


class SingleWallet(UtxoDistribution):
    def __init__(self, amounts: Sequence[int]):
        self.amounts = _check_amounts(amounts)

    def encode(self) -> list[list[int]]:
        return [list(self.amounts)]

    def _wallets_from_keys(self, keys: list[str]) -> KeyWallet:
        return KeyWallet.from_encoded(keys[0])


class WalletList(UtxoDistribution):
    def __init__(self, wallets: Sequence[Sequence[int]]):
        self.wallets = [_check_amounts(w) for w in wallets]

    def encode(self) -> list[list[int]]:
        return [list(w) for w in self.wallets]

    def _wallets_from_keys(self, keys: list[str]) -> list[KeyWallet]:
        return [KeyWallet.from_encoded(k) for k in keys]


class KeyedWallets(UtxoDistribution):
    def __init__(self, wallets: dict[str, Sequence[int]]):
        for name in wallets:
            if not isinstance(name, str):
                raise TypeError(f"wallet names must be strings, got {name!r}")
        self.wallets = {name: _check_amounts(w) for name, w in wallets.items()}

    def encode(self) -> list[list[int]]:
        return [list(w) for w in self.wallets.values()]

    def _wallets_from_keys(self, keys: list[str]) -> dict[str, KeyWallet]:
        return {
            name: KeyWallet.from_encoded(key, name=name)
            for name, key in zip(self.wallets, keys)
        }


def resolve_distribution(value: Any) -> UtxoDistribution:
    """
    Pick the distribution variant matching the shape of `value`.

    An empty list means no wallets.

    Raises:
        TypeError: If `value` matches none of the supported shapes
    """
    if isinstance(value, UtxoDistribution):
        return value
    if value is None:
        return NoWallets()
    if isinstance(value, dict):
        return KeyedWallets(value)
    if isinstance(value, (list, tuple)):
        if len(value) == 0:
            return WalletList([])
        if all(isinstance(v, (list, tuple)) for v in value):
            return WalletList(value)
        return SingleWallet(value)
    raise TypeError(f"unsupported funding distribution: {value!r}")
