"""Tests for setup parameters, proofs and the recursive proving loop."""

import pytest

from nivc.coprocessor import CubeCoprocessor, SquareCoprocessor
from nivc.errors import (
    BaseStepError,
    EmptyTraceError,
    FoldError,
    FoldingSchemeError,
    SetupError,
    UnsupportedProofKindError,
    VerificationError,
)
from nivc.lang import Lang
from nivc.proof import Proof, ProofKind, PublicParams, prove_recursively, public_params
from nivc.scheme import ClaimSet, ReferenceScheme
from nivc.steps import NIVCSteps

from tests.unit.conftest import MIXED_SOURCE, ivc_config, make_lang, nivc_config, run_source


@pytest.fixture
def scheme():
    return ReferenceScheme()


@pytest.fixture
def config():
    return nivc_config(make_lang())


@pytest.fixture
def pp(config, scheme):
    return public_params(config, scheme)


def _mixed(config):
    frames = run_source(MIXED_SOURCE, config.lang)
    return frames, NIVCSteps.from_frames(config.reduction_count, frames, config)


class TestPublicParams:
    def test_one_claim_per_circuit(self, pp, config):
        assert pp.num_circuits() == config.num_circuits()
        assert pp.reduction_count == 4

    def test_save_and_load(self, pp, scheme, tmp_path):
        path = tmp_path / "params.bin"
        pp.save(path, scheme)
        loaded = PublicParams.load(path, scheme)
        assert loaded == pp
        assert loaded.digest() == pp.digest()

    def test_records_lane_fingerprints(self, pp, config):
        assert pp.lane_fingerprints == config.lane_fingerprints()
        assert len(pp.lane_fingerprints) == 2

    def test_lane_fingerprints_survive_encoding(self, pp, scheme):
        restored = PublicParams.from_bytes(pp.to_bytes(scheme), scheme)
        assert restored.lane_fingerprints == pp.lane_fingerprints

    def test_truncated_fingerprint_table(self, scheme):
        with pytest.raises(SetupError, match="truncated"):
            PublicParams.from_bytes(b"\x00\x00\x00\x04\x00\x00\x00\x02\x00", scheme)

    def test_truncated_bytes(self, scheme):
        with pytest.raises(SetupError, match="truncated"):
            PublicParams.from_bytes(b"\x00\x01", scheme)

    def test_corrupt_bytes(self, scheme):
        with pytest.raises(SetupError, match="corrupt"):
            PublicParams.from_bytes(b"\x00\x00\x00\x04\x00\x00\x00\x00garbage", scheme)

    def test_compatible_with_own_config(self, pp, config):
        pp.check_compatible(config)

    def test_incompatible_circuit_count(self, pp):
        with pytest.raises(SetupError):
            pp.check_compatible(ivc_config(make_lang()))

    def test_incompatible_registry_order(self, pp):
        swapped = Lang.of([CubeCoprocessor(), SquareCoprocessor()])
        with pytest.raises(SetupError, match="coprocessor registry"):
            pp.check_compatible(nivc_config(swapped))

    def test_registry_order_changes_claims(self, pp, scheme):
        swapped = Lang.of([CubeCoprocessor(), SquareCoprocessor()])
        other = public_params(nivc_config(swapped), scheme)
        assert other.digest() != pp.digest()
        assert other[1].shape_digest != pp[1].shape_digest
        assert other[0].shape_digest == pp[0].shape_digest

    def test_incompatible_reduction_count(self, pp):
        with pytest.raises(SetupError, match="reduction count"):
            pp.check_compatible(nivc_config(make_lang(), 5))


class TestProofVerify:
    def test_compressed_not_supported(self, pp):
        with pytest.raises(UnsupportedProofKindError):
            Proof.compressed().verify(pp[0], [0, 0, 0, 0], None)

    def test_compressed_is_not_implemented_error(self):
        assert issubclass(UnsupportedProofKindError, NotImplementedError)

    def test_recursive_round_trip(self, pp, config, scheme):
        frames, steps = _mixed(config)
        z0 = frames[0].input.to_vector()
        outcome = prove_recursively(pp, steps, z0, scheme)
        assert outcome.proof.kind == ProofKind.RECURSIVE
        assert outcome.last_claim == pp[0]
        assert outcome.proof.verify(outcome.last_claim, z0, frames[-1].output.to_vector(), scheme)

    def test_wrong_final_state_rejected(self, pp, config, scheme):
        frames, steps = _mixed(config)
        z0 = frames[0].input.to_vector()
        outcome = prove_recursively(pp, steps, z0, scheme)
        assert not outcome.proof.verify(outcome.last_claim, z0, [3, 16, 0, 0], scheme)

    def test_zi_optional(self, pp, config, scheme):
        frames, steps = _mixed(config)
        z0 = frames[0].input.to_vector()
        outcome = prove_recursively(pp, steps, z0, scheme)
        assert outcome.proof.verify(outcome.last_claim, z0, None)

    def test_missing_accumulator(self, pp):
        assert not Proof(kind=ProofKind.RECURSIVE).verify(pp[0], [0, 0, 0, 0], None)


    def test_recursive_proof_survives_json(self, pp, config, scheme):
        frames, steps = _mixed(config)
        z0 = frames[0].input.to_vector()
        outcome = prove_recursively(pp, steps, z0, scheme)
        restored = Proof.model_validate_json(outcome.proof.model_dump_json())
        assert restored == outcome.proof
        assert restored.verify(outcome.last_claim, z0, frames[-1].output.to_vector(), scheme)

    def test_compressed_proof_survives_json(self, pp):
        restored = Proof.model_validate_json(Proof.compressed().model_dump_json())
        assert restored.kind == ProofKind.COMPRESSED
        with pytest.raises(UnsupportedProofKindError):
            restored.verify(pp[0], [0, 0, 0, 0], None)


class TestProveRecursively:
    def test_last_claim_tracks_last_circuit(self, pp, config, scheme):
        frames = run_source("CONST 2\nCALL cube\nHALT", config.lang)[:2]
        steps = NIVCSteps.from_frames(4, frames, config)
        outcome = prove_recursively(pp, steps, frames[0].input.to_vector(), scheme)
        assert outcome.last_claim.circuit_index == 2
        assert outcome.proof.snark.zi_primary == frames[-1].output.to_vector()

    def test_verify_steps_off(self, pp, config, scheme):
        frames, steps = _mixed(config)
        z0 = frames[0].input.to_vector()
        outcome = prove_recursively(pp, steps, z0, scheme, verify_steps=False)
        assert outcome.proof.verify(outcome.last_claim, z0, None, scheme)

    def test_empty_steps(self, pp, scheme):
        with pytest.raises(EmptyTraceError):
            prove_recursively(pp, NIVCSteps([]), [0, 0, 0, 0], scheme)

    def test_broken_link_fails_at_fold(self, pp, config, scheme):
        # Without the link, step 0 hands the primary pc to the auxiliary step.
        frames, steps = _mixed(config)
        steps[0].next_index = None
        with pytest.raises(FoldError) as excinfo:
            prove_recursively(pp, steps, frames[0].input.to_vector(), scheme)
        assert excinfo.value.step == 1
        assert excinfo.value.retryable

    def test_bad_initial_state_fails_at_base_step(self, pp, config, scheme):
        _, steps = _mixed(config)
        with pytest.raises(BaseStepError) as excinfo:
            prove_recursively(pp, steps, [0, 1, 0, 0], scheme)
        assert excinfo.value.step == 0
        assert "step 0" in str(excinfo.value)

    def test_params_missing_circuits(self, pp, config, scheme):
        frames = run_source("CALL square\nHALT", config.lang)
        steps = NIVCSteps.from_frames(4, frames, config)
        short = PublicParams(claims=ClaimSet(claims=pp.claims.claims[:1]), reduction_count=4)
        with pytest.raises(SetupError) as excinfo:
            prove_recursively(short, steps, frames[0].input.to_vector(), scheme)
        assert excinfo.value.step == 0

    def test_verification_failure_is_reported(self, pp, config, scheme):
        class RejectingScheme(ReferenceScheme):
            def verify(self, snark, claim, z0_primary, z0_secondary):
                raise FoldingSchemeError("rejected")

        frames, steps = _mixed(config)
        with pytest.raises(VerificationError) as excinfo:
            prove_recursively(pp, steps, frames[0].input.to_vector(), RejectingScheme())
        assert excinfo.value.step == 0

    def test_uniform_single_circuit(self, scheme):
        config = ivc_config(make_lang())
        pp = public_params(config, scheme)
        frames, steps = _mixed(config)
        z0 = frames[0].input.to_vector()
        outcome = prove_recursively(pp, steps, z0, scheme)
        assert outcome.last_claim.circuit_index == 0
        assert outcome.proof.snark.num_steps == 1
        assert outcome.proof.verify(outcome.last_claim, z0, frames[-1].output.to_vector(), scheme)
