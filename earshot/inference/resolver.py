"""
Tensor name resolution.

Models exported by different pipelines name their tensors differently.
Resolution is a ranked list of matchers evaluated against the declared
tensors: the first matcher that hits wins.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from earshot.errors import TensorResolutionFailed
from earshot.inference.base import TensorSpec

INPUT_MARKER = "waveform"
OUTPUT_MARKER = "scores"

INPUT_FALLBACKS = (
    "serving_default_waveform",
    "waveform",
    "input",
    "input_1",
    "args_0",
)

OUTPUT_FALLBACKS = (
    "scores",
    "output_0",
    "StatefulPartitionedCall",
    "Identity",
    "PartitionedCall",
)


class Matcher(ABC):
    """Predicate over a declared tensor."""

    @abstractmethod
    def matches(self, spec: TensorSpec) -> bool:
        ...

    def pick(self, declared: Sequence[TensorSpec]) -> TensorSpec | None:
        """First declared tensor this matcher accepts."""
        for spec in declared:
            if self.matches(spec):
                return spec
        return None


@dataclass(frozen=True)
class NameContains(Matcher):
    """Case-insensitive substring match on the tensor name."""
    marker: str

    def matches(self, spec: TensorSpec) -> bool:
        return self.marker.lower() in spec.name.lower()


@dataclass(frozen=True)
class ClassCount(Matcher):
    """Last dimension equals the number of classes."""
    num_classes: int

    def matches(self, spec: TensorSpec) -> bool:
        return spec.last_dim == self.num_classes


class NameIn(Matcher):
    """
    Case-insensitive exact match against an ordered list of names.

    Unlike the other matchers the candidate order matters: the earliest
    listed name that is declared wins, not the earliest declared tensor.
    """

    def __init__(self, names: Sequence[str]) -> None:
        self.names = tuple(names)

    def matches(self, spec: TensorSpec) -> bool:
        return spec.name.lower() in {n.lower() for n in self.names}

    def pick(self, declared: Sequence[TensorSpec]) -> TensorSpec | None:
        by_name = {spec.name.lower(): spec for spec in reversed(declared)}
        for name in self.names:
            spec = by_name.get(name.lower())
            if spec is not None:
                return spec
        return None

    def __repr__(self) -> str:
        return f"NameIn({list(self.names)!r})"


def input_matchers() -> list[Matcher]:
    return [NameContains(INPUT_MARKER), NameIn(INPUT_FALLBACKS)]


def output_matchers(num_classes: int) -> list[Matcher]:
    return [
        NameContains(OUTPUT_MARKER),
        ClassCount(num_classes),
        NameIn(OUTPUT_FALLBACKS),
    ]


def resolve(declared: Sequence[TensorSpec], matchers: Sequence[Matcher]) -> TensorSpec | None:
    """First declared tensor accepted by the highest ranked matcher."""
    for matcher in matchers:
        spec = matcher.pick(declared)
        if spec is not None:
            return spec
    return None


@dataclass(frozen=True)
class ResolvedTensors:
    """Input/output pair chosen for a model."""
    input: TensorSpec
    output: TensorSpec


def resolve_tensors(
    inputs: Sequence[TensorSpec],
    outputs: Sequence[TensorSpec],
    num_classes: int,
) -> ResolvedTensors:
    """
    Pick the waveform input and the score output.

    Raises:
        TensorResolutionFailed: either side unresolved; lists every
            declared tensor for diagnosis
    """
    input_spec = resolve(inputs, input_matchers())
    output_spec = resolve(outputs, output_matchers(num_classes))

    if input_spec is None or output_spec is None:
        missing = []
        if input_spec is None:
            missing.append("input")
        if output_spec is None:
            missing.append("output")
        raise TensorResolutionFailed(
            f"Could not find {' and '.join(missing)} tensor "
            f"(expected a name containing '{INPUT_MARKER}'/'{OUTPUT_MARKER}', "
            f"a {num_classes}-class output, or one of the common export names)",
            declared=[str(spec) for spec in [*inputs, *outputs]],
        )

    return ResolvedTensors(input=input_spec, output=output_spec)
