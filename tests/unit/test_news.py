"""Unit tests for the TON news feed."""

from tonedu.news.service import TON_NEWS, list_news


class TestListNews:
    def test_newest_first(self):
        dates = [item.date for item in list_news()]
        assert dates == sorted(dates, reverse=True)
        assert len(dates) == len(TON_NEWS)

    def test_filter_by_source(self):
        items = list_news(source="twitter")
        assert [item.id for item in items] == ["2", "4"]

    def test_limit(self):
        assert [item.id for item in list_news(limit=2)] == ["1", "2"]
