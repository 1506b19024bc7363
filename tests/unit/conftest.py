"""Shared helpers for the nivc unit tests."""

from nivc.constraint_system import ConstraintSystem, witness_cs
from nivc.coprocessor import CubeCoprocessor, SquareCoprocessor
from nivc.eval_types import Frame
from nivc.evaluator import evaluate
from nivc.folding_config import FoldingConfig
from nivc.ir import parse_program
from nivc.lang import Lang

# Lanes: P, P, Auxiliary(square), P
MIXED_SOURCE = """\
CONST 3
ADD 1
CALL square
HALT
"""


def make_lang() -> Lang:
    """Registry with two coprocessors: square at lane 0, cube at lane 1."""
    return Lang.of([SquareCoprocessor(), CubeCoprocessor()])


def run_source(source: str, lang: Lang, env=None, limit: int = 1000) -> list[Frame]:
    """Parse and evaluate *source* into frames."""
    return evaluate(parse_program(source), env, limit, lang)


def primary_source(n: int) -> str:
    """A program producing exactly *n* primary-lane frames (n >= 2)."""
    return "\n".join(["CONST 1"] + ["ADD 1"] * (n - 2) + ["HALT"])


def primary_frames(n: int, lang: Lang) -> list[Frame]:
    if n == 1:
        return run_source("HALT", lang)
    return run_source(primary_source(n), lang)


def nivc_config(lang: Lang, reduction_count: int = 4) -> FoldingConfig:
    return FoldingConfig.new_nivc(lang, reduction_count)


def ivc_config(lang: Lang, reduction_count: int = 4) -> FoldingConfig:
    return FoldingConfig.new_ivc(lang, reduction_count)


def alloc_state(cs: ConstraintSystem, values: list[int]):
    return [cs.alloc(f"z_{j}", lambda j=j: values[j]) for j in range(len(values))]


def synthesize_with(circuit, values: list[int]):
    """Synthesize a MultiFrame in witness mode; return (cs, output values)."""
    cs = witness_cs()
    out = circuit.synthesize(cs, alloc_state(cs, values))
    return cs, [n.get_value() for n in out]
