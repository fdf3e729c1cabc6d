import main
from candle_mirror.store import CompressStore
from helpers import make_series


def test_cli_searches_through_store(tmp_path, monkeypatch, capsys):
    history = make_series([float(v) for v in (5, 6, 8, 7, 9, 12, 11, 10, 13, 15, 14, 16, 18, 17, 19)])
    query = make_series([float(v) for v in range(50, 62)], start=10**12)
    history_requests = []
    plotted = []

    def fake_history(symbol, interval):
        history_requests.append((symbol, interval))
        return history

    monkeypatch.setenv("CANDLE_MIRROR_HOME", str(tmp_path))
    monkeypatch.setattr(main, "load_history", fake_history)
    monkeypatch.setattr(main, "CompressStore", lambda: CompressStore(loader=lambda s, i, n: query[-n:]))
    monkeypatch.setattr(main, "plot_matches", lambda *args, **kwargs: plotted.append((args, kwargs)))

    main.main()

    out = capsys.readouterr().out
    assert history_requests == [("BTC-USD", 1)]
    assert "of 4 Matches" in out
    query_arg, historical_arg, results_arg = plotted[0][0]
    assert query_arg == tuple(query)
    assert historical_arg == tuple(history)
    assert len(results_arg) == 4
