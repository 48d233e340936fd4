from ledgersync.memo import SnapshotMemo, distinct_until_changed
from ledgersync.models import DomainSnapshot, DomainType

from conftest import make_token


def _snapshot(items, fetched_at):
    return DomainSnapshot(domain=DomainType.TOKENS, items=items, fetched_at=fetched_at)


def test_distinct_until_changed_skips_republished_snapshot():
    seen = []
    consumer = distinct_until_changed(seen.append)

    consumer(_snapshot((make_token(balance="1"),), 1.0))
    consumer(_snapshot((make_token(balance="1"),), 2.0))
    consumer(_snapshot((make_token(balance="2"),), 3.0))

    assert [s.fetched_at for s in seen] == [1.0, 3.0]


def test_snapshot_memo_recomputes_only_on_change():
    memo = SnapshotMemo(lambda s: sum(t.balance for t in s.items))

    first = memo(_snapshot((make_token(balance="1"), make_token("DAI", "2")), 1.0))
    again = memo(_snapshot((make_token(balance="1"), make_token("DAI", "2")), 5.0))
    changed = memo(_snapshot((make_token(balance="4"),), 6.0))

    assert first == again == 3
    assert changed == 4
    assert memo.computations == 2


def test_plain_values_compare_directly():
    seen = []
    consumer = distinct_until_changed(seen.append)
    for value in (1, 1, 2, 2, 1):
        consumer(value)
    assert seen == [1, 2, 1]
