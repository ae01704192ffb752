"""Tests for the dashboard launcher."""

from light_tracking import server_runner


class FakeServer:
    """Stands in for ``uvicorn.Server``; ``run`` plays a tray Quit click."""

    def __init__(self, config, on_run):
        self.config = config
        self.should_exit = False
        self._on_run = on_run

    def run(self):
        self._on_run()


def test_tray_quit_asks_server_to_exit(monkeypatch, db_path):
    captured = {}
    servers = []

    def fake_create_app(**kwargs):
        captured.update(kwargs)
        return object()

    def fake_server(config):
        server = FakeServer(config, lambda: captured["on_quit"]())
        servers.append(server)
        return server

    monkeypatch.setattr(server_runner, "create_app", fake_create_app)
    monkeypatch.setattr(server_runner.uvicorn, "Config", lambda app, **kw: (app, kw))
    monkeypatch.setattr(server_runner.uvicorn, "Server", fake_server)

    server_runner.run_dashboard(db_path=db_path, open_browser=False, enable_tray=True)

    assert captured["enable_tray"] is True
    assert servers[0].config[1]["port"] == 8765
    assert servers[0].should_exit is True
