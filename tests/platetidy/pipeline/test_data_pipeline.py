"""
End-to-end pipeline tests on real workbook files.

Each test writes a small workbook shaped like one of the plate-reader exports,
runs the configured pipeline over it and checks the tables and charts produced.
"""

import math
import textwrap

import matplotlib.pyplot as plt
import pytest
import yaml

from platetidy.exceptions import ConfigError, LoadError, RenderError
from platetidy.pipeline.data_pipeline import (
    PipelineResult,
    build_long_table,
    build_summary,
    run_pipeline,
    run_pipeline_from_yaml,
)
from platetidy.config.models import PipelineConfig

LPS_YAML = textwrap.dedent("""
    dataset:
      path: plate.xlsx
      layout:
        cell_range: E29:L32
        columns:
          - {name: no_beads}
          - {name: beads_dex_2um}
          - {name: beads_dex_0.5um}
          - {name: beads_dex_0.1um}
          - {name: beads_res_0.5nm}
          - {name: beads_res_0.25nm}
          - {name: beads_res_0.05nm}
          - {name: beads_PBS}
    reshape: {}
    summary:
      by: condition
    plots:
      - name: bar
        kind: bar
        x: condition
        color: condition
        style:
          title: "Phagocytosis of Beads (LPS Treatment)"
          ylabel: Fluorescence Intensity
          rotate_xticks: 45
        output: charts/lps_bar.png
""")


@pytest.mark.integration
class TestLpsBarGraph:

    def test_yaml_run_saves_chart(self, tmp_path, write_workbook, lps_rows):
        write_workbook(lps_rows, start="E29")
        config_path = tmp_path / "lps.yaml"
        config_path.write_text(LPS_YAML, encoding="utf-8")

        result = run_pipeline_from_yaml(config_path)

        assert isinstance(result, PipelineResult)
        assert result.wide.shape == (4, 8)
        assert len(result.long) == 32
        assert list(result.long.columns) == ["condition", "fluorescence_intensity"]

        summary = result.summary.set_index("condition")
        assert len(summary) == 8
        assert summary.loc["no_beads", "mean_fluorescence_intensity"] == pytest.approx(101.25)
        assert summary.loc["beads_PBS", "mean_fluorescence_intensity"] == pytest.approx(6125.0)
        assert summary.loc["beads_dex_2um", "standard_dev"] == pytest.approx(math.sqrt(200000 / 3))

        output = result.outputs["bar"]
        assert output == tmp_path / "charts" / "lps_bar.png"
        assert output.is_file()
        assert len(result.figures["bar"].axes[0].patches) == 8

    def test_log_records_each_stage(self, tmp_path, write_workbook, lps_rows, caplog):
        write_workbook(lps_rows, start="E29")
        config_path = tmp_path / "lps.yaml"
        config_path.write_text(LPS_YAML, encoding="utf-8")

        run_pipeline_from_yaml(config_path)

        messages = [r.getMessage() for r in caplog.records]
        assert any(m.startswith("Loading ") for m in messages)
        assert any("Summary has 8 group(s)" in m for m in messages)
        assert any("Pipeline finished: 1 chart(s), 1 file(s) written" in m for m in messages)

    def test_close_figures(self, tmp_path, write_workbook, lps_rows):
        write_workbook(lps_rows, start="E29")
        config = yaml.safe_load(LPS_YAML)

        result = run_pipeline(config, base_dir=tmp_path, close_figures=True)

        assert result.outputs["bar"].is_file()
        assert not plt.fignum_exists(result.figures["bar"].number)

    def test_result_close(self, tmp_path, write_workbook, lps_rows):
        write_workbook(lps_rows, start="E29")
        config = yaml.safe_load(LPS_YAML)
        config["plots"][0].pop("output")

        result = run_pipeline(config, base_dir=tmp_path)
        assert result.outputs == {}
        assert plt.fignum_exists(result.figures["bar"].number)

        result.close()
        assert not plt.fignum_exists(result.figures["bar"].number)


@pytest.mark.integration
class TestEfferocytosisTimeCourse:

    @pytest.fixture
    def config(self, efferocytosis_layout_dict):
        return {
            "dataset": {"path": "plate.xlsx", "layout": efferocytosis_layout_dict},
            "reshape": {"names_to": None},
            "summary": {"by": ["treatment", "timepoint"]},
            "plots": [
                {
                    "name": "time_course",
                    "kind": "line",
                    "x": "timepoint",
                    "group": "treatment",
                    "show_points": True,
                    "style": {"hue_order": ["PBS"], "seed": 3},
                },
                {"name": "bars", "kind": "bar", "x": "timepoint", "color": "treatment"},
            ],
        }

    def test_transposed_block(self, tmp_path, write_workbook, efferocytosis_rows, config):
        write_workbook(efferocytosis_rows, start="C24")

        result = run_pipeline(config, base_dir=tmp_path)

        assert list(result.wide.columns) == ["treatment", "timepoint"] + [f"rep_{i}" for i in range(1, 7)]
        assert len(result.wide) == 12
        assert list(result.long.columns) == ["treatment", "timepoint", "fluorescence_intensity"]
        assert len(result.long) == 72

        summary = result.summary
        assert len(summary) == 12
        pbs_10 = summary[(summary["treatment"] == "PBS") & (summary["timepoint"] == "10min")]
        assert pbs_10["mean_fluorescence_intensity"].item() == pytest.approx(1025.0)
        assert pbs_10["standard_dev"].item() == pytest.approx(math.sqrt(350))

        assert set(result.figures) == {"time_course", "bars"}
        assert len(result.figures["bars"].axes[0].patches) == 12

    def test_split_packed_condition(self, tmp_path, write_workbook):
        rows = [
            ["PBS_10min", "PBS_40min", "Dex_2um_10min", "Dex_2um_40min"],
            [1.0, 3.0, 5.0, 7.0],
            [3.0, 5.0, 7.0, 9.0],
        ]
        write_workbook(rows)
        config = PipelineConfig.model_validate({
            "dataset": {
                "path": "plate.xlsx",
                "layout": {
                    "cell_range": "A1:D3",
                    "header": True,
                    "columns": [{"name": name} for name in rows[0]],
                },
            },
            "reshape": {},
            "split": {"column": "condition", "into": ["treatment", "timepoint"]},
            "summary": {"by": ["treatment", "timepoint"]},
        })

        result = run_pipeline(config, base_dir=tmp_path)

        assert result.long["treatment"].unique().tolist() == ["PBS", "Dex_2um"]
        dex_40 = result.summary[(result.summary["treatment"] == "Dex_2um") & (result.summary["timepoint"] == "40min")]
        assert dex_40["mean_fluorescence_intensity"].item() == 8.0


@pytest.mark.integration
class TestWormMobility:

    @pytest.fixture
    def workbook(self, write_workbook, worm_frame):
        rows = [list(worm_frame.columns)] + worm_frame.values.tolist()
        return write_workbook(rows, name="worms.xlsx", sheet="Speeds")

    @pytest.fixture
    def config(self):
        return {
            "dataset": {
                "path": "worms.xlsx",
                "layout": {
                    "sheet": "Speeds",
                    "header": True,
                    "columns": [
                        {"name": "worm_type", "role": "key"},
                        {"name": "plasmid", "role": "key"},
                        {"name": "day", "role": "key", "dtype": "int"},
                        {"name": "average_speed"},
                    ],
                },
            },
            "interaction": {"columns": ["worm_type", "plasmid"]},
            "summary": {"by": ["day", "worm_type", "plasmid"], "mean_name": "mean_speed"},
            "plots": [
                {
                    "name": "box",
                    "kind": "box",
                    "x": "day",
                    "color": "worm_type:plasmid",
                    "show_points": True,
                    "overlay_summary": True,
                },
                {"name": "panels", "kind": "box", "x": "plasmid", "facet": "worm_type"},
                {
                    "name": "grid",
                    "kind": "box",
                    "x": "day",
                    "facet_row": "worm_type",
                    "facet": "plasmid",
                    "overlay_summary": True,
                },
            ],
        }

    def test_already_long_table(self, tmp_path, workbook, config, worm_frame):
        result = run_pipeline(config, base_dir=tmp_path)

        assert len(result.wide) == len(worm_frame)
        assert "worm_type:plasmid" in result.long.columns
        assert result.long["worm_type:plasmid"].iloc[0] == "N2:empty"
        assert result.long["day"].dtype == "int64"

        summary = result.summary
        assert len(summary) == 12
        assert list(summary.columns) == [
            "day", "worm_type", "plasmid", "mean_speed", "standard_dev", "worm_type:plasmid",
        ]
        first = summary[(summary["day"] == 1) & (summary["worm_type"] == "N2") & (summary["plasmid"] == "empty")]
        assert first["mean_speed"].item() == pytest.approx(0.20)

        assert len(result.figures["panels"].axes) == 2
        assert [ax.get_title() for ax in result.figures["grid"].axes] == [
            "mutant | empty", "mutant | rescue", "N2 | empty", "N2 | rescue",
        ]
        assert result.outputs == {}


class TestPipelineStages:

    def test_build_long_without_reshape_copies(self, worm_frame):
        config = PipelineConfig.model_validate({
            "dataset": {"path": "worms.xlsx", "layout": {"header": True, "columns": [
                {"name": "worm_type", "role": "key"},
                {"name": "plasmid", "role": "key"},
                {"name": "day", "role": "key", "dtype": "int"},
                {"name": "average_speed"},
            ]}},
            "summary": {"by": "worm_type"},
        })

        long = build_long_table(worm_frame, config)

        assert long.equals(worm_frame)
        assert long is not worm_frame

    def test_interaction_not_added_when_sources_are_not_keys(self, worm_frame):
        config = PipelineConfig.model_validate({
            "dataset": {"path": "worms.xlsx", "layout": {"columns": [
                {"name": "worm_type", "role": "key"},
                {"name": "plasmid", "role": "key"},
                {"name": "day", "role": "key", "dtype": "int"},
                {"name": "average_speed"},
            ]}},
            "interaction": {"columns": ["worm_type", "plasmid"], "name": "strain"},
            "summary": {"by": "worm_type"},
        })

        summary = build_summary(build_long_table(worm_frame, config), config)

        assert list(summary.columns) == ["worm_type", "mean_fluorescence_intensity", "standard_dev"]


class TestPipelineErrors:

    def test_missing_data_file(self, tmp_path):
        config = yaml.safe_load(LPS_YAML)

        with pytest.raises(LoadError) as exc_info:
            run_pipeline(config, base_dir=tmp_path)
        assert exc_info.value.error_code == "LOAD_001"

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            run_pipeline_from_yaml(tmp_path / "nothing.yaml")
        assert exc_info.value.error_code == "CONFIG_001"

    def test_plot_column_missing(self, tmp_path, write_workbook, lps_rows):
        write_workbook(lps_rows, start="E29")
        config = yaml.safe_load(LPS_YAML)
        config["plots"][0]["x"] = "treatment"
        config["plots"][0]["color"] = None

        with pytest.raises(RenderError) as exc_info:
            run_pipeline(config, base_dir=tmp_path)
        assert exc_info.value.error_code == "RENDER_001"

    def test_layout_mismatch(self, tmp_path, write_workbook, lps_rows):
        write_workbook([row[:6] for row in lps_rows], start="E29")
        config = yaml.safe_load(LPS_YAML)
        config["dataset"]["layout"]["cell_range"] = "E29:J32"

        with pytest.raises(LoadError) as exc_info:
            run_pipeline(config, base_dir=tmp_path)
        assert exc_info.value.error_code == "LOAD_004"
