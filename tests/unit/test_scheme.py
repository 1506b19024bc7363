"""Tests for the reference folding scheme."""

import pytest

from nivc.errors import FoldingSchemeError
from nivc.proof import z0_secondary
from nivc.scheme import ClaimSet, ReferenceScheme, get_scheme
from nivc.steps import NIVCSteps, blank_primary_step

from tests.unit.conftest import MIXED_SOURCE, ivc_config, make_lang, nivc_config, run_source


def _setup(config):
    scheme = ReferenceScheme()
    return scheme, scheme.setup(blank_primary_step(config))


def _mixed_steps():
    lang = make_lang()
    config = nivc_config(lang)
    frames = run_source(MIXED_SOURCE, lang)
    return config, frames, NIVCSteps.from_frames(4, frames, config)


def _fold_all(scheme, claims, steps, z0):
    first = steps[0]
    snark = scheme.base_step(
        claims[first.circuit_index()],
        first,
        claims.digest(),
        first.circuit_index(),
        first.circuit_index(),
        len(claims),
        z0,
        z0_secondary(),
    )
    for step in list(steps)[1:]:
        snark = scheme.prove_step(
            snark, claims[step.circuit_index()], step, z0, z0_secondary()
        )
    return snark


class TestSetup:
    def test_one_claim_per_circuit(self):
        _, claims = _setup(nivc_config(make_lang()))
        assert len(claims) == 3
        assert [c.circuit_index for c in claims.claims] == [0, 1, 2]
        assert all(c.num_circuits == 3 for c in claims.claims)
        assert all(c.arity == 4 for c in claims.claims)

    def test_claims_bound_to_claim_set_digest(self):
        _, claims = _setup(nivc_config(make_lang()))
        assert all(c.params_digest == claims.digest() for c in claims.claims)

    def test_uniform_setup_has_single_claim(self):
        _, claims = _setup(ivc_config(make_lang()))
        assert len(claims) == 1

    def test_setup_is_deterministic(self):
        config = nivc_config(make_lang())
        assert _setup(config)[1] == _setup(config)[1]

    def test_reduction_count_changes_primary_shape(self):
        lang = make_lang()
        small = _setup(nivc_config(lang, 2))[1]
        large = _setup(nivc_config(lang, 5))[1]
        assert small[0].shape_digest != large[0].shape_digest
        assert small[1].shape_digest == large[1].shape_digest


class TestFolding:
    def test_fold_and_verify(self):
        config, frames, steps = _mixed_steps()
        scheme, claims = _setup(config)
        z0 = frames[0].input.to_vector()
        snark = _fold_all(scheme, claims, steps, z0)
        assert snark.num_steps == 3
        assert snark.program_counter == 0
        zi = scheme.verify(snark, claims[steps[-1].circuit_index()], z0, z0_secondary())
        assert zi == frames[-1].output.to_vector()

    def test_verify_rejects_claim_of_other_circuit(self):
        config, frames, steps = _mixed_steps()
        scheme, claims = _setup(config)
        z0 = frames[0].input.to_vector()
        snark = _fold_all(scheme, claims, steps, z0)
        with pytest.raises(FoldingSchemeError, match="claim is for circuit 1"):
            scheme.verify(snark, claims[1], z0, z0_secondary())

    def test_prove_step_rejects_wrong_program_counter(self):
        config, frames, steps = _mixed_steps()
        scheme, claims = _setup(config)
        z0 = frames[0].input.to_vector()
        snark = _fold_all(scheme, claims, NIVCSteps([steps[0]]), z0)
        with pytest.raises(FoldingSchemeError, match="program counter"):
            scheme.prove_step(snark, claims[0], steps[2], z0, z0_secondary())

    def test_base_step_rejects_foreign_claim(self):
        config, frames, steps = _mixed_steps()
        scheme, claims = _setup(config)
        _, other = _setup(nivc_config(make_lang(), 2))
        with pytest.raises(FoldingSchemeError, match="claim set"):
            scheme.base_step(
                claims[0], steps[0], other.digest(), 0, 0, 3,
                frames[0].input.to_vector(), z0_secondary(),
            )

    def test_base_step_rejects_bad_secondary(self):
        config, frames, steps = _mixed_steps()
        scheme, claims = _setup(config)
        with pytest.raises(FoldingSchemeError, match="secondary"):
            scheme.base_step(
                claims[0], steps[0], claims.digest(), 0, 0, 3,
                frames[0].input.to_vector(), [0, 0],
            )

    def test_unsatisfied_step_rejected(self):
        config, frames, steps = _mixed_steps()
        scheme, claims = _setup(config)
        with pytest.raises(FoldingSchemeError, match="unsatisfied"):
            scheme.base_step(
                claims[0], steps[0], claims.digest(), 0, 0, 3,
                [0, 5, 0, 0], z0_secondary(),
            )

    def test_tampered_record_detected(self):
        config, frames, steps = _mixed_steps()
        scheme, claims = _setup(config)
        z0 = frames[0].input.to_vector()
        snark = _fold_all(scheme, claims, steps, z0)
        forged_record = snark.records[1].model_copy(update={"z_out": [3, 17, 0, 0]})
        forged = snark.model_copy(
            update={"records": [snark.records[0], forged_record, snark.records[2]]}
        )
        with pytest.raises(FoldingSchemeError):
            scheme.verify(forged, claims[0], z0, z0_secondary())

    def test_wrong_z0_detected(self):
        config, frames, steps = _mixed_steps()
        scheme, claims = _setup(config)
        snark = _fold_all(scheme, claims, steps, frames[0].input.to_vector())
        with pytest.raises(FoldingSchemeError, match="z0"):
            scheme.verify(snark, claims[0], [1, 0, 0, 0], z0_secondary())


class TestClaimEncoding:
    def test_round_trip(self):
        scheme, claims = _setup(nivc_config(make_lang()))
        assert scheme.restore_claims(scheme.encode_claims(claims)) == claims

    def test_corrupt_bytes(self):
        with pytest.raises(FoldingSchemeError, match="corrupt"):
            ReferenceScheme().restore_claims(b"{not json")

    def test_claim_set_indexing(self):
        _, claims = _setup(nivc_config(make_lang()))
        assert isinstance(claims, ClaimSet)
        assert claims[2].circuit_index == 2


class TestGetScheme:
    def test_reference(self):
        assert isinstance(get_scheme("reference"), ReferenceScheme)
        assert isinstance(get_scheme(), ReferenceScheme)

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown folding scheme"):
            get_scheme("hypernova")
