import math

import pandas as pd
import pytest

from rbridge.manager.instance_writer import render_instances, write_instances
from rbridge.model import Attribute, ModelConfiguration
from rbridge.utils.errors import ConfigurationError


def test_header_and_rows(model_config, training_rows):
    text = render_instances(model_config, training_rows)

    assert text == (
        "@relation rbridge\n"
        "\n"
        "@attribute A1 {'a','b'}\n"
        "@attribute A2 REAL\n"
        "@attribute class {'0','1'}\n"
        "\n"
        "@data\n"
        "'a',1.0,'0'\n"
        "'b',2.5,'1'\n"
        "'a',3.0,'0'\n"
        "?,4.5,'1'\n"
    )


def test_dataframe_matches_rows(model_config, training_rows):
    frame = pd.DataFrame(training_rows, columns=["A1", "A2", "class"])
    assert render_instances(model_config, frame) == render_instances(model_config, training_rows)


def test_missing_values():
    config = ModelConfiguration(
        [
            Attribute.categorical("c", ["x", "__unknown__"]),
            Attribute.numeric("n"),
            Attribute.categorical("y", ["0", "1"]),
        ],
        class_index=2,
    )
    text = render_instances(
        config,
        [["__unknown__", math.nan, "1"], [None, pd.NA, "0"]],
    )

    assert "@attribute c {'x'}" in text
    assert text.endswith("?,?,'1'\n?,?,'0'\n")


def test_names_and_values_are_quoted_when_needed():
    config = ModelConfiguration(
        [
            Attribute.categorical("petal width", ["it's", "b\\c"]),
            Attribute.numeric("1st"),
            Attribute.categorical("class", ["0", "1"]),
        ],
        class_index=2,
    )
    text = render_instances(config, [["it's", True, "1"], ["b\\c", 7, "0"]], relation="my data")

    assert "@relation 'my data'" in text
    assert "@attribute 'petal width' {'it\\'s','b\\\\c'}" in text
    assert "@attribute X1st REAL" in text
    assert "'it\\'s',1,'1'" in text
    assert "'b\\\\c',7,'0'" in text


def test_bad_numeric_value():
    config = ModelConfiguration(
        [Attribute.numeric("n"), Attribute.categorical("y", ["0", "1"])], class_index=1
    )
    with pytest.raises(ConfigurationError, match="numeric attribute 'n'"):
        render_instances(config, [["abc", "0"]])


def test_row_length_mismatch(model_config):
    with pytest.raises(ConfigurationError, match="Instance 1 has 2 values, expected 3"):
        render_instances(model_config, [["a", 1.0, "0"], ["a", 1.0]])


def test_write_instances(tmp_path, model_config, training_rows):
    path = write_instances(tmp_path / "dump" / "train.arff", model_config, training_rows)

    assert path.read_text().startswith("@relation rbridge\n")
    assert not (tmp_path / "dump" / "train.arff.tmp").exists()
