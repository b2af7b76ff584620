# tests/test_network.py
"""
End-to-end tests: real uvicorn servers per node, HTTP transport, CLI runner
"""

import argparse

import aiohttp
import pytest

from benor.cli import build_config, main, parse_faulty, parse_values
from benor.config import NodeConfig, Settings, get_settings
from benor.network.launcher import launch_network, start_consensus, stop_network


@pytest.fixture
def local_settings():
    settings = Settings()
    settings.NODE_HOST = "127.0.0.1"
    settings.BASE_NODE_PORT = 46310
    settings.SEND_TIMEOUT = 1.0
    return settings


@pytest.mark.network
class TestHttpNetwork:
    """Nodes talking over HTTP on consecutive ports"""

    @pytest.mark.asyncio
    async def test_network_decides_over_http(self, local_settings):
        config = NodeConfig(round_delay=0.2, readiness_poll_interval=0.05)
        handle = await launch_network(
            4, 1, [1, 0, 1, 1], [False, False, False, True],
            settings=local_settings, config=config
        )
        try:
            assert handle.barrier.all_ready()

            async with aiohttp.ClientSession() as session:
                async with session.get(f"{local_settings.node_url(3)}/status") as response:
                    assert response.status == 500
                    assert await response.text() == "faulty"

            answers = await start_consensus(handle)

            assert answers[3] == "stopped"
            decided = {answers[i] for i in range(3)}
            assert len(decided) == 1
            assert decided.pop().startswith("decided ")

            async with aiohttp.ClientSession() as session:
                async with session.get(f"{local_settings.node_url(0)}/getState") as response:
                    state = await response.json()
            assert state["decided"] is True
        finally:
            await stop_network(handle)

        assert all(task.done() for task in handle.server_tasks)


class TestCli:
    """Argument parsing and the in-memory runner"""

    def test_parse_values(self):
        assert parse_values("0, 1,?", 3) == [0, 1, None]

    def test_parse_values_rejects_bad_input(self):
        with pytest.raises(argparse.ArgumentTypeError, match="Invalid opinion"):
            parse_values("0,2", 2)
        with pytest.raises(argparse.ArgumentTypeError, match="Expected 3"):
            parse_values("0,1", 3)

    def test_parse_faulty(self):
        assert parse_faulty("", 3) == [False, False, False]
        assert parse_faulty("0,2", 3) == [True, False, True]
        with pytest.raises(argparse.ArgumentTypeError, match="outside"):
            parse_faulty("3", 3)

    def test_simulate_command(self, capsys):
        exit_code = main([
            "simulate", "-n", "4", "-f", "1",
            "--values", "1,1,1,0",
            "--faulty", "3",
            "--round-delay", "0.01",
            "--seed", "3",
            "--timeout", "10",
        ])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "node 3 [faulty]" in out
        assert '"decided": true' in out

    def test_invalid_values_exit(self):
        with pytest.raises(SystemExit):
            main(["simulate", "-n", "2", "--values", "0,1,1"])

    def test_parse_faulty_rejects_non_integer_id(self):
        with pytest.raises(argparse.ArgumentTypeError, match="Invalid faulty node id 'x'"):
            parse_faulty("0,x", 3)

    @pytest.mark.parametrize("extra", [
        ["--faulty", "x"],
        ["-f", "5"],
        ["--drop-rate", "1.5"],
        ["--drop-rate", "-0.1"],
        ["--round-delay", "-1"],
    ])
    def test_bad_arguments_exit_with_usage_error(self, extra, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["simulate", "-n", "3", "--values", "0,1,1"] + extra)

        assert exc_info.value.code == 2
        assert "error:" in capsys.readouterr().err

    def test_serve_config_uses_round_delay_argument(self):
        args = argparse.Namespace(mode="serve", nodes=3, faults=1, drop_rate=0.0, round_delay=0.25)

        config = build_config(args)

        assert config.round_delay == 0.25
        assert config.readiness_poll_interval == get_settings().READINESS_POLL_INTERVAL

    def test_serve_config_rejects_negative_round_delay(self):
        args = argparse.Namespace(mode="serve", nodes=3, faults=1, drop_rate=0.0, round_delay=-1.0)

        with pytest.raises(argparse.ArgumentTypeError, match="round_delay"):
            build_config(args)
