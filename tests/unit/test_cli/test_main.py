"""Unit tests for the feedrank CLI."""

import asyncio
import json
from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from feedrank.cli.main import cli, parse_weight_assignments
from feedrank.store.scoped import IdentityStore
from feedrank.store.store import KeyValueStore
from feedrank.store.weights import UserWeightStore
from tests.helpers.factories import make_account


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    """Create a state database with a recorded account."""
    path = tmp_path / "state.sqlite"

    async def record_identity() -> None:
        with KeyValueStore(path) as kv:
            await IdentityStore(kv).set_identity(make_account("me", "42"))

    asyncio.run(record_identity())
    return path


def _stored_weights(path: Path) -> dict[str, float]:
    async def read() -> dict[str, float]:
        with KeyValueStore(path) as kv:
            storage = await IdentityStore(kv).scoped()
            return await UserWeightStore(storage).get_weights_multi(["favs", "diversity"])

    return asyncio.run(read())


class TestParseWeightAssignments:
    """Tests for NAME=VALUE parsing."""

    def test_parses_numbers(self) -> None:
        """Integers and floats both become floats."""
        assert parse_weight_assignments(("favs=2", " diversity =-0.5")) == {
            "favs": 2.0,
            "diversity": -0.5,
        }

    @pytest.mark.parametrize("raw", ["favs", "=1", "favs=many"])
    def test_rejects_malformed(self, raw: str) -> None:
        """Malformed arguments are usage errors."""
        with pytest.raises(click.BadParameter):
            parse_weight_assignments((raw,))


class TestWeightsCommands:
    """Tests for the weights command group."""

    def test_set_then_show(self, state_path: Path) -> None:
        """Stored weights are printed back by show."""
        runner = CliRunner()

        set_result = runner.invoke(
            cli, ["weights", "set", "favs=2", "diversity=0.5", "--state", str(state_path)]
        )
        show_result = runner.invoke(
            cli,
            ["weights", "show", "--state", str(state_path), "--name", "favs", "--name", "diversity"],
        )

        assert set_result.exit_code == 0, set_result.output
        assert show_result.exit_code == 0, show_result.output
        assert json.loads(show_result.output) == {"diversity": 0.5, "favs": 2.0}

    def test_arguments_override_profile(self, state_path: Path, tmp_path: Path) -> None:
        """NAME=VALUE arguments win over the profile."""
        profile = tmp_path / "profile.yaml"
        profile.write_text("weights:\n  favs: 1.0\n  diversity: 3.0\n")
        runner = CliRunner()

        result = runner.invoke(
            cli,
            ["weights", "set", "favs=5", "--profile", str(profile), "--state", str(state_path)],
        )

        assert result.exit_code == 0, result.output
        assert _stored_weights(state_path) == {"favs": 5.0, "diversity": 3.0}

    def test_invalid_profile(self, state_path: Path, tmp_path: Path) -> None:
        """An invalid profile stores nothing and exits non-zero."""
        profile = tmp_path / "profile.yaml"
        profile.write_text("weights:\n  favs: .inf\n")

        result = CliRunner().invoke(
            cli, ["weights", "set", "--profile", str(profile), "--state", str(state_path)]
        )

        assert result.exit_code == 1
        assert _stored_weights(state_path) == {}

    def test_bad_assignment(self, state_path: Path) -> None:
        """Malformed arguments exit with a usage error."""
        result = CliRunner().invoke(
            cli, ["weights", "set", "favs", "--state", str(state_path)]
        )

        assert result.exit_code == 2

    def test_nothing_to_set(self, state_path: Path) -> None:
        """Calling set without weights is a usage error."""
        result = CliRunner().invoke(cli, ["weights", "set", "--state", str(state_path)])

        assert result.exit_code == 2

    def test_no_identity(self, tmp_path: Path) -> None:
        """Weights cannot be stored before an account is known."""
        result = CliRunner().invoke(
            cli, ["weights", "show", "--state", str(tmp_path / "empty.sqlite")]
        )

        assert result.exit_code == 1
