from LOGLENS.analysis.history import History


class TestHistory:

    def test_empty(self):
        history = History()
        assert history.previous_record() is None
        assert history.next_record() is None

    def test_duplicates_ignored(self):
        history = History()
        history.add("error")
        history.add("timeout")
        history.add("error")
        assert history.entries == ["error", "timeout"]

    def test_walks_back_from_newest(self):
        history = History(["a", "b", "c"])
        assert history.previous_record() == "c"
        assert history.previous_record() == "b"
        assert history.previous_record() == "a"
        assert history.previous_record() is None

    def test_next_returns_towards_newest(self):
        history = History(["a", "b", "c"])
        history.previous_record()
        history.previous_record()
        assert history.next_record() == "c"
        assert history.next_record() is None
        assert history.previous_record() == "c"

    def test_add_ends_navigation(self):
        history = History(["a", "b"])
        history.previous_record()
        history.previous_record()
        history.add("c")
        assert history.previous_record() == "c"

    def test_reset(self):
        history = History(["a", "b"])
        history.previous_record()
        history.reset()
        assert history.next_record() is None
        assert history.previous_record() == "b"
