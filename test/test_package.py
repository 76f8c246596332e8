import sys
from importlib import metadata


def test_dev_version(monkeypatch, mocker):
    # When reqflow is run from a source checkout without installation
    monkeypatch.delitem(sys.modules, "reqflow.core.version")
    mocker.patch("importlib.metadata.version", side_effect=metadata.PackageNotFoundError)
    from reqflow.core.version import REQFLOW_VERSION

    # Then its version is "dev"
    assert REQFLOW_VERSION == "dev"


def test_version_option():
    from click.testing import CliRunner

    from reqflow.cli import reqflow

    result = CliRunner().invoke(reqflow, ["--version"])

    assert result.exit_code == 0
    assert result.output.startswith("reqflow, version ")
