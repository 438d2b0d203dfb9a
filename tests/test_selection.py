"""Tests for provider selection."""

import pytest

from web_extract.config import ProviderName, RequestOptions
from web_extract.providers.selection import SelectionPolicy
from web_extract.providers.state import ProviderStateTracker

EXA = ProviderName.EXA
FIRECRAWL = ProviderName.FIRECRAWL
LOCAL = ProviderName.LOCAL


def make_policy(clock, available=(EXA, FIRECRAWL, LOCAL), priority=None):
    state = ProviderStateTracker(60, clock=clock)
    for provider in available:
        state.set_available(provider, True)
    if priority is None:
        return SelectionPolicy(state)
    return SelectionPolicy(state, priority)


@pytest.mark.unit
class TestSelectionPolicy:
    def test_nothing_usable(self, clock):
        policy = make_policy(clock, available=())

        assert policy.select() is None

    def test_priority_order_prefers_local(self, clock):
        assert make_policy(clock).select() == LOCAL

    def test_priority_skips_rate_limited(self, clock):
        policy = make_policy(clock)
        policy.state.record_rate_limit(LOCAL)

        assert policy.select() == EXA

    def test_preferred_usable(self, clock):
        assert make_policy(clock).select(preferred=FIRECRAWL) == FIRECRAWL

    def test_preferred_unusable_without_fallback(self, clock):
        policy = make_policy(clock, available=(LOCAL,))

        assert policy.select(preferred=EXA, fallback=False) is None

    def test_preferred_unusable_with_fallback(self, clock):
        policy = make_policy(clock, available=(LOCAL,))

        assert policy.select(preferred=EXA, fallback=True) == LOCAL

    def test_html_prefers_firecrawl(self, clock):
        policy = make_policy(clock)

        assert policy.select(options=RequestOptions(html=True)) == FIRECRAWL

    def test_html_with_explicit_preference(self, clock):
        policy = make_policy(clock)

        assert policy.select(preferred=EXA, options=RequestOptions(html=True)) == EXA

    def test_html_without_firecrawl_uses_priority(self, clock):
        policy = make_policy(clock, available=(EXA, LOCAL))

        assert policy.select(options=RequestOptions(html=True)) == LOCAL

    def test_tie_break_on_recent_success_then_errors(self, clock):
        policy = make_policy(clock, priority=())
        policy.state.record_success(EXA)
        clock.advance(5)
        policy.state.record_success(FIRECRAWL)

        assert policy.select() == FIRECRAWL

    def test_tie_break_on_errors_without_success(self, clock):
        policy = make_policy(clock, available=(EXA, FIRECRAWL), priority=())
        policy.state.record_error(EXA)

        assert policy.select() == FIRECRAWL
