import dataclasses

import pytest

from phic_chart.config.schema import CompileConfig, RenderConfig, config_from_mapping, config_to_dict


def test_defaults():
    cc, rc = config_from_mapping(None)
    assert cc == CompileConfig()
    assert rc == RenderConfig()
    assert rc.force_line_alpha01 is None


def test_sectioned_mapping():
    cc, rc = config_from_mapping(
        {
            "compile": {"rpe_easing_shift": 1, "height_subdivisions": 4},
            "render": {"note_flow_speed_multiplier": 1.5, "judge_line_rgb": [1, 0, 0], "nope": 3},
        }
    )
    assert cc.rpe_easing_shift == 1
    assert cc.height_subdivisions == 4
    assert rc.note_flow_speed_multiplier == 1.5
    assert rc.judge_line_rgb == (1.0, 0.0, 0.0)


def test_flat_mapping_feeds_both():
    cc, rc = config_from_mapping({"require_assets": False, "force_line_alpha01": 0.5, "unknown": 1})
    assert cc.require_assets is False
    assert rc.force_line_alpha01 == 0.5


def test_configs_are_frozen_and_validated():
    with pytest.raises(dataclasses.FrozenInstanceError):
        RenderConfig().line_width = 2.0
    with pytest.raises(ValueError):
        CompileConfig(height_subdivisions=0)


def test_to_dict_round_trips():
    cc, rc = CompileConfig(rpe_easing_shift=2), RenderConfig(line_width=0.02)
    assert config_from_mapping(config_to_dict(cc, rc)) == (cc, rc)
