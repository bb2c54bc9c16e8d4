import numpy as np
import pytest

from stackae.autoencoders import (
    AutoEncoder,
    BinaryUnit,
    Pooler,
    StandardAutoEncoder,
    SupervisedAutoEncoder,
    ToRealUnit
)
from stackae.common import DataBlock
from stackae.layers import LinearLayer
from stackae.pooling import Mean, SExpLog


def line_block(*values):
    """Block of width len(values), height 1, depth 1."""
    return DataBlock.from_array(np.array(values, dtype=float).reshape(-1, 1, 1))


def linear_ae(encoder_weight, decoder_weight=None, **kwargs):
    encoder_weight = np.asarray(encoder_weight, dtype=float)
    n_in, n_out = encoder_weight.shape
    return StandardAutoEncoder(n_in, 1, 1, n_out, encoder="linear",
                               encoder_weight=encoder_weight,
                               decoder_weight=decoder_weight, **kwargs)


def test_sizes_and_repr():
    ae = StandardAutoEncoder(2, 2, 3, 5, rng=0)
    assert ae.input_length == 12
    assert ae.input_size == 12
    assert (ae.encoder.input_size, ae.encoder.output_size) == (12, 5)
    assert (ae.decoder.input_size, ae.decoder.output_size) == (5, 12)
    assert repr(ae) == "[SAE]:2x2x5"


def test_bad_dimensions_are_rejected():
    with pytest.raises(ValueError):
        StandardAutoEncoder(0, 2, 1, 1)
    with pytest.raises(ValueError):
        AutoEncoder(1, 1, 1, 0)


def test_encode_writes_into_the_output_cell():
    ae = linear_ae([[1.0], [10.0]])
    ae.set_input(line_block(1.0, 2.0, 3.0), 1, 0)
    np.testing.assert_array_equal(ae.input_array, [2.0, 3.0])

    out = DataBlock(2, 2, 1)
    ae.set_output(out, 1, 1)
    ae.encode()
    assert out.get_value(0, 1, 1) == pytest.approx(32.0)
    assert out.values.sum() == pytest.approx(32.0)


def test_decoder_reads_the_code():
    ae = linear_ae([[1.0], [1.0]], decoder_weight=[[1.0, 2.0]])
    ae.set_input(line_block(2.0, 3.0))
    ae.encode()
    ae.decode()
    np.testing.assert_allclose(ae.decoded, [5.0, 10.0])


def test_training_lowers_the_reconstruction_error(rng):
    block = DataBlock.from_array(rng.uniform(-0.5, 0.5, size=(2, 2, 1)))
    ae = StandardAutoEncoder(2, 2, 1, 2, learning_rate=0.1, rng=0)
    ae.set_input(block)
    errors = [ae.train() for _ in range(300)]
    assert errors[-1] < errors[0]
    assert np.all(ae.encoder.error == 0)
    assert np.all(ae.decoder.error == 0)


def test_set_input_checks_depth_and_bounds():
    ae = StandardAutoEncoder(2, 2, 1, 1, rng=0)
    with pytest.raises(ValueError):
        ae.set_input(DataBlock(3, 3, 2))
    with pytest.raises(ValueError):
        ae.set_input(DataBlock(3, 3, 1), 2, 0)


def test_set_output_checks_depth_and_bounds():
    ae = StandardAutoEncoder(1, 1, 1, 2, rng=0)
    with pytest.raises(ValueError):
        ae.set_output(DataBlock(2, 2, 1), 0, 0)
    with pytest.raises(ValueError):
        ae.set_output(DataBlock(2, 2, 2), 2, 0)


def test_layers_must_match_the_unit():
    ae = AutoEncoder(1, 1, 2, 1)
    with pytest.raises(ValueError, match="encoder must be set"):
        ae.set_decoder(LinearLayer(1, 2))
    with pytest.raises(ValueError):
        ae.set_encoder(LinearLayer(3, 1))
    ae.set_encoder(LinearLayer(2, 1))
    with pytest.raises(ValueError):
        ae.set_decoder(LinearLayer(1, 3))


def test_back_propagate_pastes_into_the_previous_error():
    ae = linear_ae([[2.0], [3.0]])
    block = line_block(1.0, 1.0, 1.0)
    prev = DataBlock(3, 1, 1)
    ae.set_input(block, 1, 0)
    ae.set_prev_error(prev)

    ae.encode()
    ae.error.set_value(0, 0, 0, 1.0)
    assert ae.back_propagate() == pytest.approx(1.0)

    np.testing.assert_allclose(prev.values[:, 0, 0], [0.0, 2.0, 3.0])
    np.testing.assert_array_equal(prev.weight[:, 0], [0, 1, 1])


def test_previous_error_must_match_the_input():
    ae = StandardAutoEncoder(1, 1, 1, 1, rng=0)
    ae.set_input(DataBlock(3, 3, 1))
    with pytest.raises(ValueError):
        ae.set_prev_error(DataBlock(2, 3, 1))


def test_paste_decoded_counts_overlaps():
    ae = linear_ae([[1.0], [1.0]], decoder_weight=[[1.0, 1.0]])
    block = line_block(0.0, 2.0, 3.0)
    ae.set_input(block, 1, 0)
    ae.encode()
    ae.decode()

    rebuilt = DataBlock(3, 1, 1)
    ae.paste_decoded(rebuilt, 1, 0)
    ae.paste_decoded(rebuilt, 1, 0)
    np.testing.assert_allclose(rebuilt.values[:, 0, 0], [0.0, 10.0, 10.0])
    np.testing.assert_array_equal(rebuilt.weight[:, 0], [0, 2, 2])


def test_delete_features_shrinks_both_layers():
    ae = StandardAutoEncoder(1, 1, 2, 3, encoder="linear", rng=1)
    encoder_weight = ae.encoder.weight.copy()
    decoder_weight = ae.decoder.weight.copy()

    ae.delete_features(0, 2)
    assert ae.output_depth == 1
    np.testing.assert_array_equal(ae.encoder.weight, encoder_weight[:, [1]])
    np.testing.assert_array_equal(ae.decoder.weight, decoder_weight[[1], :])

    ae.set_input(DataBlock.from_array(np.ones((1, 1, 2))))
    ae.encode()
    ae.decode()
    assert ae.get_output_array().shape == (1,)
    assert ae.decoded.shape == (2,)


def test_clone_has_its_own_parameters(random_block):
    ae = StandardAutoEncoder(2, 2, 2, 3, rng=0)
    ae.set_input(random_block, 3, 1)
    clone = ae.clone()

    assert type(clone) is StandardAutoEncoder
    assert (clone.input_x, clone.input_y) == (3, 1)
    np.testing.assert_array_equal(clone.encoder.weight, ae.encoder.weight)
    assert clone.encoder.weight is not ae.encoder.weight

    ae.encode()
    clone.encode()
    np.testing.assert_allclose(clone.get_output_array(), ae.get_output_array())


def test_activate_output():
    ae = StandardAutoEncoder(1, 1, 1, 3, rng=0)
    ae.activate_output(1, True)
    np.testing.assert_array_equal(ae.get_output_array(), [0.0, 1.0, 0.0])
    ae.activate_output(1, False)
    assert ae.get_output_array()[1] == 0.0


def test_training_mode_reaches_the_layers():
    ae = StandardAutoEncoder(1, 1, 1, 1, rng=0)
    ae.start_training()
    assert ae.is_training and ae.encoder.is_training and ae.decoder.is_training
    ae.stop_training()
    assert not (ae.is_training or ae.encoder.is_training or ae.decoder.is_training)


def test_supervised_training_pulls_the_code_towards_the_label():
    ae = SupervisedAutoEncoder(1, 1, 2, 2, encoder="linear", learning_rate=0.05, rng=0)
    assert ae.is_supervised
    assert repr(ae) == "[SupAE]:1x1x2"
    ae.set_input(DataBlock.from_array(np.array([[[0.5, -0.5]]])))
    for _ in range(300):
        ae.train(label=0)
    ae.encode()
    code = ae.get_output_array()
    assert code[0] > 0.5
    assert code[1] < -0.5


def test_supervised_label_must_be_a_code_unit():
    ae = SupervisedAutoEncoder(1, 1, 1, 2, rng=0)
    ae.set_input(DataBlock(1, 1, 1))
    with pytest.raises(ValueError):
        ae.train(label=2)
    assert isinstance(ae.train(), float)


def test_supervised_clone_keeps_the_weighting():
    ae = SupervisedAutoEncoder(1, 1, 1, 2, supervision_weight=0.25, rng=0)
    clone = ae.clone()
    assert isinstance(clone, SupervisedAutoEncoder)
    assert clone.supervision_weight == 0.25


def test_pooler_encodes_and_decodes(rng):
    block = DataBlock.from_array(rng.uniform(-1, 1, size=(4, 2, 1)))
    pooler = Pooler(2, 2, 1, "max")
    assert pooler.type_name == "Pooler[Max]"
    assert pooler.output_depth == 1

    pooler.set_input(block, 2, 0)
    out = DataBlock(2, 1, 1)
    pooler.set_output(out, 1, 0)
    pooler.encode()
    top = block.values[2:4, 0:2, 0].max()
    assert out.get_value(0, 1, 0) == top

    pooler.decode()
    np.testing.assert_array_equal(pooler.decoded, np.full(4, top))


def test_pooler_routes_the_error_to_the_selected_cell(rng):
    block = DataBlock.from_array(rng.uniform(-1, 1, size=(4, 2, 1)))
    pooler = Pooler(2, 2, 1)
    pooler.set_input(block, 2, 0)
    out = DataBlock(2, 1, 1)
    pooler.set_output(out, 1, 0)

    err = DataBlock(2, 1, 1)
    err.set_value(0, 1, 0, 0.7)
    pooler.set_error(err)
    prev = DataBlock(4, 2, 1)
    pooler.set_prev_error(prev)

    assert pooler.back_propagate() == pytest.approx(0.7)
    ox, oy = np.unravel_index(np.argmax(block.values[2:4, 0:2, 0]), (2, 2))
    assert prev.get_value(0, 2 + ox, oy) == pytest.approx(0.7)
    assert prev.values.sum() == pytest.approx(0.7)

    pooler.clear_error()
    assert err.values.sum() == 0.0
    assert prev.values.sum() == 0.0


def test_pooler_cannot_be_trained():
    pooler = Pooler(2, 2, 1, Mean(2, 2))
    with pytest.raises(NotImplementedError):
        pooler.train()
    with pytest.raises(NotImplementedError):
        pooler.delete_features(0)
    with pytest.raises(ValueError):
        Pooler(2, 2, 1, Mean(3, 2))
    clone = pooler.clone()
    assert isinstance(clone.selector, Mean)
    assert clone.selector is not pooler.selector


def test_pooler_clone_keeps_the_learned_temperature():
    pooler = Pooler(2, 2, 1, SExpLog(2, 2, learning_rate=0.5))
    pooler.selector.w = 1.5
    clone = pooler.clone()
    assert clone.selector.w == 1.5
    assert clone.selector.learning_rate == 0.5
    clone.selector.w = 2.0
    assert pooler.selector.w == 1.5


def test_get_and_set_params():
    ae = StandardAutoEncoder(2, 2, 1, 3, rng=0)
    params = ae.get_params()
    assert params["output_depth"] == 3
    assert params["encoder"] is ae.encoder
    assert "input_width" in ae.get_params("non_trainable")
    assert ae.set_params(is_denoising=True) is ae
    assert ae.is_denoising
    with pytest.raises(ValueError):
        ae.set_params(momentum=0.9)


def test_binary_unit_thresholds_each_element():
    unit = BinaryUnit(1, 2, 1)
    assert unit.has_binary_output
    assert unit.output_depth == 2
    unit.set_input(DataBlock.from_array(np.array([[[0.3], [-0.2]]])))
    unit.encode()
    np.testing.assert_array_equal(unit.get_output_array(), [1.0, 0.0])
    unit.decode()
    np.testing.assert_array_equal(unit.decoded, [1.0, -1.0])
    assert unit.train() == 0.0


def test_binary_unit_passes_the_error_straight_through():
    unit = BinaryUnit(1, 2, 1)
    unit.set_input(DataBlock(1, 2, 1))
    prev = DataBlock(1, 2, 1)
    unit.set_prev_error(prev)
    unit.error.set_values(0, 0, [0.5, -0.5])
    unit.back_propagate()
    np.testing.assert_array_equal(prev.values[0, :, 0], [0.5, -0.5])


def test_to_real_unit():
    unit = ToRealUnit(1, 1, 3, 3)
    assert unit.needs_binary_input
    unit.set_input(DataBlock.from_array(np.array([[[1.0, 0.0, 1.0]]])))
    unit.encode()
    np.testing.assert_array_equal(unit.get_output_array(), [1.0, -1.0, 1.0])
    unit.decode()
    np.testing.assert_array_equal(unit.decoded, [1.0, 0.0, 1.0])


def test_to_real_unit_shape_rules():
    with pytest.raises(ValueError, match="convolved"):
        ToRealUnit(2, 1, 1, 1)
    with pytest.raises(ValueError, match="same input and output"):
        ToRealUnit(1, 1, 2, 3)
