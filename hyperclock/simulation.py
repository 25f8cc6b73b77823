"""A synchronous simulation of future, prime and memory buffers."""

from __future__ import annotations

import argparse
import random
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass

__all__ = ["Bias", "DecayingMirror", "Simulation", "main"]

_BIAS_KINDS = ("even", "odd", "unique", "custom", "none")


@dataclass(frozen=True)
class Bias:
    """A rule that a prime value should satisfy."""

    kind: str
    predicate: Callable[[int], bool] | None = None

    def __post_init__(self) -> None:
        if self.kind not in _BIAS_KINDS:
            raise ValueError(f"unknown bias {self.kind!r}")
        if (self.kind == "custom") != (self.predicate is not None):
            raise ValueError("a predicate is required for, and only for, a custom bias")

    @classmethod
    def even(cls) -> Bias:
        return cls("even")

    @classmethod
    def odd(cls) -> Bias:
        return cls("odd")

    @classmethod
    def unique(cls) -> Bias:
        """Valid when the value differs from the previous prime."""
        return cls("unique")

    @classmethod
    def custom(cls, predicate: Callable[[int], bool]) -> Bias:
        return cls("custom", predicate)

    @classmethod
    def none(cls) -> Bias:
        """Always valid."""
        return cls("none")

    def check(self, value: int, prev_prime: int | None) -> bool:
        """Whether ``value`` satisfies the bias given the previous prime."""
        if self.kind == "even":
            return value % 2 == 0
        if self.kind == "odd":
            return value % 2 == 1
        if self.kind == "unique":
            return prev_prime is None or value != prev_prime
        if self.kind == "custom":
            assert self.predicate is not None
            return bool(self.predicate(value))
        return True


class DecayingMirror:
    """Generates digits that tend to repeat, with a decaying chance of repetition."""

    PROBABILITIES = (80, 70, 60, 50)

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self.prev: int | None = None
        self.stage = 0

    def next(self) -> int:
        """Return the next value in 0..9."""
        if self.prev is None:
            value = self._rng.randrange(10)
            self.stage = 0
        elif self._rng.randrange(100) < self.PROBABILITIES[self.stage]:
            value = self.prev
            self.stage = self.stage + 1 if self.stage + 1 < len(self.PROBABILITIES) else 0
        else:
            value = self._rng.randrange(10)
            while value == self.prev:
                value = self._rng.randrange(10)
            self.stage = 0
        self.prev = value
        return value


def _resize(values: list[int | None], length: int) -> None:
    del values[length:]
    values.extend([None] * (length - len(values)))


def _debug(value: int | None) -> str:
    return "None" if value is None else f"Some({value})"


class Simulation:
    """Steps the three buffers tick by tick.

    ``future[t + 1]`` holds the prediction for tick ``t + 1``, ``prime[t]`` the
    value chosen at ``t`` and ``memory[t - 1]`` an echo of ``prime[t]`` when it
    satisfies the bias.
    """

    def __init__(self, bias: Bias, rng: random.Random | None = None) -> None:
        self.bias = bias
        self._rng = rng if rng is not None else random.Random()
        self.decaying = DecayingMirror(self._rng)
        self.future: list[int | None] = []
        self.prime: list[int | None] = []
        self.memory: list[int | None] = []

    def _choose(self, candidate: int, predicted: int, prev_prime: int | None) -> int:
        if candidate == predicted:
            return candidate
        candidate_valid = self.bias.check(candidate, prev_prime)
        future_valid = self.bias.check(predicted, prev_prime)
        if candidate_valid:
            return candidate
        if future_valid:
            return predicted if self._rng.random() < 0.75 else candidate
        return candidate if self._rng.random() < 0.5 else predicted

    def run_ticks(self, ticks: int) -> None:
        """Run ``ticks`` ticks, starting at tick 0."""
        if ticks < 0:
            raise ValueError("ticks must not be negative")
        _resize(self.future, ticks + 1)
        _resize(self.prime, ticks)
        _resize(self.memory, ticks)

        for t in range(ticks):
            self.future[t + 1] = self.decaying.next()
            if t == 0:
                continue
            candidate = self._rng.randrange(10)
            prev_prime = self.prime[t - 1]
            predicted = self.future[t]
            assert predicted is not None
            chosen = self._choose(candidate, predicted, prev_prime)
            self.prime[t] = chosen
            if self.bias.check(chosen, prev_prime):
                self.memory[t - 1] = chosen

    def format_buffers(self) -> str:
        """Render the buffers as a table, one row per tick."""
        lines = ["t  | future | prime | memory"]
        for t, prime in enumerate(self.prime):
            future = self.future[t + 1] if t + 1 < len(self.future) else None
            memory = None if t == 0 else self.memory[t - 1]
            lines.append(f"{t:2} |   {_debug(future)}   |  {_debug(prime)}  |   {_debug(memory)}")
        return "\n".join(lines)

    def print_buffers(self) -> str:
        """Write the buffer table to standard output and return it."""
        text = self.format_buffers()
        sys.stdout.write(text + "\n")
        sys.stdout.flush()
        return text


def main(argv: Sequence[str] | None = None) -> int:
    """Simulate some ticks and print the buffers."""
    parser = argparse.ArgumentParser(description="Run the triple-buffer simulation.")
    parser.add_argument("--ticks", type=int, default=10)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--bias", choices=["even", "odd", "unique", "none"], default="even")
    args = parser.parse_args(argv)
    if args.ticks < 0:
        parser.error("--ticks must not be negative")
    sim = Simulation(Bias(args.bias), random.Random(args.seed))
    sim.run_ticks(args.ticks)
    sim.print_buffers()
    return 0