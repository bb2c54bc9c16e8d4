import numpy as np
import pandas as pd
import pytest

from stackae.autoencoders import (
    BinaryUnit,
    Pooler,
    StandardAutoEncoder,
    SupervisedAutoEncoder,
    ToRealUnit
)
from stackae.common import DataBlock
from stackae.scae import SCAE


def random_blocks(rng, n, shape):
    return [DataBlock.from_array(rng.uniform(-0.5, 0.5, size=shape)) for _ in range(n)]


@pytest.fixture
def two_stages():
    scae = SCAE(StandardAutoEncoder(2, 2, 1, 3, rng=0))
    scae.add_layer(StandardAutoEncoder(2, 2, 3, 2, rng=1))
    return scae


def test_single_stage():
    scae = SCAE(StandardAutoEncoder(3, 2, 1, 4, rng=0))
    assert len(scae.stages) == 1
    assert scae.base is scae.top
    assert (scae.input_patch_width, scae.input_patch_height, scae.input_patch_depth) == (3, 2, 1)
    assert scae.output_depth == 4
    assert scae.base.input.shape == (3, 2, 1)


def test_add_layer_grows_the_lower_grids(two_stages):
    scae = two_stages
    assert len(scae.stages) == 2
    assert scae.base.output.shape == (2, 2, 3)
    assert scae.top.output.shape == (1, 1, 2)
    assert scae.top.input is scae.base.output
    assert (scae.input_patch_width, scae.input_patch_height) == (3, 3)
    assert scae.base.input.shape == (3, 3, 1)
    assert repr(scae) == "([SAE]:2x2x3+1+1 | [SAE]:2x2x2+1+1)"


def test_add_layer_with_strides():
    scae = SCAE(StandardAutoEncoder(3, 3, 1, 4, rng=0))
    scae.add_layer(Pooler(2, 2, 4), 2, 2)
    scae.add_layer(StandardAutoEncoder(2, 1, 4, 2, rng=1))
    # top 2x1 window -> pooler grid 2x1 -> pooler patch 4x2 -> base grid 4x2
    assert scae.stages[1].output.shape == (2, 1, 4)
    assert scae.base.output.shape == (4, 2, 4)
    assert (scae.input_patch_width, scae.input_patch_height) == (6, 4)


def test_forward_returns_the_top_code(two_stages, rng):
    block = DataBlock.from_array(rng.uniform(-1, 1, size=(5, 5, 1)))
    two_stages.set_input(block, 1, 2)
    code = two_stages.forward()
    assert code.shape == (2,)
    np.testing.assert_array_equal(code, two_stages.top.output.values[0, 0])
    assert np.all(np.abs(code) < 1.0)


def test_binary_inputs_need_a_binary_unit():
    scae = SCAE(StandardAutoEncoder(1, 1, 2, 2, rng=0))
    with pytest.raises(ValueError, match="requires binary inputs"):
        scae.add_layer(ToRealUnit(1, 1, 2, 2))


def test_binary_then_real_stack():
    scae = SCAE(BinaryUnit(1, 1, 2))
    scae.add_layer(ToRealUnit(1, 1, 2, 2))
    scae.set_input(DataBlock.from_array(np.array([[[0.7, -0.1]]])))
    np.testing.assert_array_equal(scae.forward(), [1.0, -1.0])


def test_center_input():
    scae = SCAE(StandardAutoEncoder(3, 3, 1, 2, rng=0))
    block = DataBlock(7, 7, 1)
    scae.center_input(block, 3, 4)
    assert (scae.base.input_x, scae.base.input_y) == (2, 3)
    assert scae.base.input is block


def test_highest_output_index():
    ae = StandardAutoEncoder(1, 1, 2, 3, encoder="linear",
                             encoder_weight=[[0.0, 5.0, 0.0], [0.0, 0.0, 1.0]])
    scae = SCAE(ae)
    scae.set_input(DataBlock.from_array(np.ones((1, 1, 2))))
    scae.forward()
    assert scae.highest_output_index() == 1


def test_central_multilayer_features(two_stages, rng):
    two_stages.set_input(DataBlock.from_array(rng.uniform(-1, 1, size=(3, 3, 1))))
    two_stages.forward()
    assert two_stages.feature_length == 5

    features = two_stages.get_central_multilayer_features()
    np.testing.assert_array_equal(features[:3], two_stages.base.output.values[1, 1])
    np.testing.assert_array_equal(features[3:], two_stages.top.output.values[0, 0])
    assert two_stages.get_central_multilayer_features() is features


def test_backward_reconstructs_every_stage(two_stages, rng):
    block = DataBlock.from_array(rng.uniform(-1, 1, size=(3, 3, 1)))
    two_stages.set_input(block)
    two_stages.forward()
    before = block.copy()
    two_stages.backward()
    # the base output was cleared and averaged
    assert np.all(two_stages.base.output.weight == 1)

    # paste the same stage-0 reconstruction into an empty block
    pasted = DataBlock(3, 3, 1)
    two_stages.set_input(pasted)
    two_stages.base.rebuild_input(False)
    assert np.any(pasted.values != 0)

    # the external block received it on top of its content, one count per tile
    np.testing.assert_allclose(block.values, before.values + pasted.values)
    np.testing.assert_array_equal(block.weight, [[1, 2, 1], [2, 4, 2], [1, 2, 1]])


def test_train_only_updates_the_top(two_stages, rng):
    two_stages.set_input(DataBlock.from_array(rng.uniform(-1, 1, size=(3, 3, 1))))
    base_weight = two_stages.base.base.encoder.weight.copy()
    top_weight = two_stages.top.base.encoder.weight.copy()

    err = two_stages.train()
    assert isinstance(err, float)
    np.testing.assert_array_equal(two_stages.base.base.encoder.weight, base_weight)
    assert not np.array_equal(two_stages.top.base.encoder.weight, top_weight)
    two_stages.training_done()


def test_train_supervised_needs_a_supervised_top(two_stages):
    with pytest.raises(ValueError, match="not supervised"):
        two_stages.train_supervised(0)

    scae = SCAE(StandardAutoEncoder(2, 2, 1, 3, rng=0))
    scae.add_layer(SupervisedAutoEncoder(2, 2, 3, 2, rng=1))
    assert scae.train_supervised(1) >= 0.0


def test_delete_features(two_stages):
    two_stages.delete_features(0)
    assert two_stages.output_depth == 1
    assert two_stages.feature_length == 4
    assert two_stages.get_central_multilayer_features().shape == (4,)


def test_fit_records_the_loss_curve(rng):
    scae = SCAE(StandardAutoEncoder(2, 2, 1, 2, learning_rate=0.05, rng=0))
    blocks = random_blocks(rng, 4, (5, 4, 1))
    assert scae.fit(blocks, epochs=3, random_state=0) is scae
    assert len(scae.loss_curve_) == 3
    assert scae.n_iter_ == 3
    assert all(loss >= 0 for loss in scae.loss_curve_)
    assert not scae.is_training
    assert not scae.base.base.encoder.is_training


def test_fit_is_reproducible(rng):
    blocks = random_blocks(rng, 3, (4, 4, 1))
    curves = []
    for _ in range(2):
        scae = SCAE(StandardAutoEncoder(2, 2, 1, 2, learning_rate=0.05, rng=0))
        scae.fit(blocks, epochs=2, random_state=7)
        curves.append(scae.loss_curve_)
    assert curves[0] == curves[1]


def test_fit_verbose_output(rng, capsys):
    scae = SCAE(StandardAutoEncoder(2, 2, 1, 2, rng=0), verbose=True)
    scae.fit(random_blocks(rng, 2, (3, 3, 1)), epochs=2)
    out = capsys.readouterr().out
    assert "Epoch 1/2, Error:" in out
    assert "Epoch 2/2, Error:" in out
    assert "Training completed in 2 epochs" in out


def test_fit_with_labels(rng):
    scae = SCAE(SupervisedAutoEncoder(2, 2, 1, 2, rng=0))
    scae.fit(random_blocks(rng, 2, (3, 3, 1)), labels=[0, 1], epochs=2)
    assert len(scae.loss_curve_) == 2
    with pytest.raises(ValueError):
        scae.fit(random_blocks(rng, 2, (3, 3, 1)), labels=[0])


def test_fit_without_blocks_warns():
    scae = SCAE(StandardAutoEncoder(1, 1, 1, 1, rng=0))
    with pytest.warns(RuntimeWarning, match="without any sample"):
        scae.fit([])
    assert scae.loss_curve_ == []


def test_fit_rejects_small_blocks(rng):
    scae = SCAE(StandardAutoEncoder(3, 3, 1, 1, rng=0))
    with pytest.raises(ValueError, match="smaller"):
        scae.fit(random_blocks(rng, 1, (2, 3, 1)))
    assert not scae.is_training


def test_extract_features_tiles_one_picture_per_unit():
    scae = SCAE(StandardAutoEncoder(2, 2, 1, 4, rng=0))
    features = scae.extract_features()
    assert features.shape == (5, 5, 1)
    assert np.all(np.abs(features.values) <= 1.0)
    # gaps between the pictures stay empty
    assert np.all(features.values[2, :, :] == 0)
    assert np.all(features.values[:, 2, :] == 0)


def test_extract_features_grid_for_three_units():
    scae = SCAE(StandardAutoEncoder(2, 2, 1, 3, rng=0))
    assert scae.extract_features().shape == (8, 2, 1)


def test_reconstruction_score_of_a_perfect_auto_encoder(rng):
    ae = StandardAutoEncoder(2, 2, 1, 4, encoder="linear",
                             encoder_weight=np.eye(4), decoder_weight=np.eye(4))
    scae = SCAE(ae)
    block = DataBlock.from_array(rng.uniform(-1, 1, size=(4, 3, 1)))
    before = block.values.copy()

    score = scae.get_reconstruction_score(block)
    assert isinstance(score, pd.Series)
    assert set(score.index) == {
        "euclidean_mean", "euclidean_variance",
        "scale_offset_invariant_mean", "scale_offset_invariant_variance",
        "correlation_mean", "correlation_variance",
    }
    assert score["euclidean_mean"] == pytest.approx(0.0, abs=1e-12)
    assert score["scale_offset_invariant_mean"] == pytest.approx(0.0, abs=1e-12)
    assert score["correlation_mean"] == pytest.approx(0.0, abs=1e-2)
    np.testing.assert_array_equal(block.values, before)


def test_reconstruction_score_mask_and_variance(rng):
    scae = SCAE(StandardAutoEncoder(2, 2, 1, 2, rng=0))
    block = DataBlock.from_array(rng.uniform(-1, 1, size=(4, 4, 1)))
    score = scae.get_reconstruction_score(block, 2, 2, mask=SCAE.EUCLIDEAN)
    assert list(score.index) == ["euclidean_mean", "euclidean_variance"]
    assert score["euclidean_mean"] > 0.0
    assert score["euclidean_variance"] >= 0.0


def test_reconstruction_score_errors():
    scae = SCAE(StandardAutoEncoder(2, 2, 1, 2, rng=0))
    block = DataBlock(3, 3, 1)
    with pytest.raises(ValueError):
        scae.get_reconstruction_score(block, mask=0)
    with pytest.raises(ValueError):
        scae.get_reconstruction_score(block, offset_x=0)
    with pytest.raises(ValueError):
        scae.get_reconstruction_score(DataBlock(1, 3, 1))


def test_training_mode_reaches_every_stage(two_stages):
    two_stages.start_training()
    assert all(stage.is_training for stage in two_stages.stages)
    two_stages.stop_training()
    assert not any(stage.base.is_training for stage in two_stages.stages)


def test_get_and_set_params(two_stages):
    assert "verbose" in two_stages.get_params("non_trainable")
    assert two_stages.set_params(verbose=True) is two_stages
    assert two_stages.verbose
    with pytest.raises(ValueError):
        two_stages.set_params(depth=3)
