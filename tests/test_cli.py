"""Tests for stepflow.cli."""

import json
import os
import tempfile

import yaml

from stepflow.cli import main


def _write_temp_file(content: str, suffix: str = ".flow") -> str:
    fd, path = tempfile.mkstemp(suffix=suffix)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(content)
    return path


VALID_SOURCE = '''
workflow "cli-test" {
  step 1: fetch("https://api.example.com")
  step 2: summarize(step 1)
}
'''

INVALID_SOURCE = '''
workflow "bad" {
  step 1: summarize(step 1)
}
'''

BROKEN_SOURCE = 'workflow "broken" { step 1 fetch("x") }'


class TestCliParse:

    def test_parse_outputs_ast(self, capsys):
        path = _write_temp_file(VALID_SOURCE)
        try:
            rc = main(["parse", path])
            assert rc == 0
            ast = json.loads(capsys.readouterr().out)
            assert ast["workflows"][0]["name"] == "cli-test"
        finally:
            os.unlink(path)

    def test_parse_syntax_error(self, capsys):
        path = _write_temp_file(BROKEN_SOURCE)
        try:
            rc = main(["parse", path])
            assert rc == 1
            assert "Expected ':'" in capsys.readouterr().err
        finally:
            os.unlink(path)

    def test_parse_strict(self, capsys):
        path = _write_temp_file("junk " + VALID_SOURCE)
        try:
            assert main(["parse", path]) == 0
            assert main(["parse", "--strict", path]) == 1
        finally:
            os.unlink(path)

    def test_file_not_found(self, capsys):
        rc = main(["parse", "nonexistent.flow"])
        assert rc == 1
        assert "file not found" in capsys.readouterr().err


class TestCliValidate:

    def test_validate_success(self, capsys):
        path = _write_temp_file(VALID_SOURCE)
        try:
            rc = main(["validate", path])
            assert rc == 0
            assert "Valid: 1 workflow(s), 2 step(s)" in capsys.readouterr().out
        finally:
            os.unlink(path)

    def test_validate_failure(self, capsys):
        path = _write_temp_file(INVALID_SOURCE)
        try:
            rc = main(["validate", path])
            assert rc == 1
            assert "references itself" in capsys.readouterr().err
        finally:
            os.unlink(path)

    def test_warnings_printed(self, capsys):
        path = _write_temp_file('workflow "w" { step 1: teleport("x") }')
        try:
            rc = main(["validate", path])
            assert rc == 0
            assert 'Warning: Unknown command "teleport"' in capsys.readouterr().err
        finally:
            os.unlink(path)


class TestCliGraph:

    def test_graph_json(self, capsys):
        path = _write_temp_file(VALID_SOURCE)
        try:
            rc = main(["graph", path])
            assert rc == 0
            graph = json.loads(capsys.readouterr().out)
            assert len(graph["nodes"]) == 2
            assert len(graph["edges"]) == 2
        finally:
            os.unlink(path)

    def test_graph_yaml(self, capsys):
        path = _write_temp_file(VALID_SOURCE)
        try:
            rc = main(["graph", "--format", "yaml", path])
            assert rc == 0
            graph = yaml.safe_load(capsys.readouterr().out)
            assert graph["workflowName"] == "cli-test"
        finally:
            os.unlink(path)

    def test_graph_mermaid(self, capsys):
        path = _write_temp_file(VALID_SOURCE)
        try:
            rc = main(["graph", "--format", "mermaid", path])
            assert rc == 0
            assert capsys.readouterr().out.startswith("graph TD")
        finally:
            os.unlink(path)

    def test_graph_invalid_source(self, capsys):
        path = _write_temp_file(INVALID_SOURCE)
        try:
            assert main(["graph", path]) == 1
        finally:
            os.unlink(path)


class TestCliConvert:

    def _graph_file(self, capsys, fmt):
        path = _write_temp_file(VALID_SOURCE)
        try:
            main(["graph", "--format", fmt, path])
        finally:
            os.unlink(path)
        return _write_temp_file(capsys.readouterr().out, suffix=f".{fmt}")

    def test_convert_json(self, capsys):
        graph_path = self._graph_file(capsys, "json")
        try:
            rc = main(["convert", graph_path])
            assert rc == 0
            out = capsys.readouterr().out
            assert out.startswith('workflow "cli-test" {')
            assert "step 2: summarize(step 1)" in out
        finally:
            os.unlink(graph_path)

    def test_convert_yaml(self, capsys):
        graph_path = self._graph_file(capsys, "yaml")
        try:
            rc = main(["convert", graph_path])
            assert rc == 0
            assert "step 1: fetch(" in capsys.readouterr().out
        finally:
            os.unlink(graph_path)

    def test_convert_bad_graph(self, capsys):
        path = _write_temp_file('{"nodes": 1}', suffix=".json")
        try:
            rc = main(["convert", path])
            assert rc == 1
            assert "Failed to convert to DSL" in capsys.readouterr().err
        finally:
            os.unlink(path)

    def test_convert_unreadable(self, capsys):
        path = _write_temp_file("nodes: [unclosed", suffix=".yaml")
        try:
            assert main(["convert", path]) == 1
        finally:
            os.unlink(path)


class TestCliRun:

    def test_run_summary(self, capsys):
        path = _write_temp_file(VALID_SOURCE)
        try:
            rc = main(["run", path])
            assert rc == 0
            out = capsys.readouterr().out
            assert "Workflow: cli-test [completed]" in out
            assert "Steps: 2/2 completed" in out
        finally:
            os.unlink(path)

    def test_run_json(self, capsys):
        path = _write_temp_file(VALID_SOURCE)
        try:
            rc = main(["run", "--json", path])
            assert rc == 0
            data = json.loads(capsys.readouterr().out)
            assert data["workflows"][0]["stepResults"]["1"]["status"] == "success"
        finally:
            os.unlink(path)

    def test_run_invalid(self, capsys):
        path = _write_temp_file(INVALID_SOURCE)
        try:
            assert main(["run", path]) == 1
        finally:
            os.unlink(path)


class TestCliMisc:

    def test_describe(self, capsys):
        path = _write_temp_file(VALID_SOURCE)
        try:
            rc = main(["describe", path])
            assert rc == 0
            out = capsys.readouterr().out
            assert "Step 1: Fetch data from URL" in out
            assert "Step 2: Summarize data" in out
        finally:
            os.unlink(path)

    def test_commands(self, capsys):
        assert main(["commands"]) == 0
        out = capsys.readouterr().out
        assert "send_email" in out

    def test_examples(self, capsys):
        assert main(["examples"]) == 0
        assert "// basic" in capsys.readouterr().out

    def test_single_example(self, capsys):
        assert main(["examples", "conditional"]) == 0
        assert "if (step 1.status" in capsys.readouterr().out

    def test_unknown_example(self, capsys):
        assert main(["examples", "nope"]) == 1

    def test_no_command(self, capsys):
        assert main([]) == 1

    def test_verbose_flag(self, capsys):
        path = _write_temp_file(VALID_SOURCE)
        try:
            assert main(["--verbose", "validate", path]) == 0
        finally:
            os.unlink(path)
