from polroute.tables import BASE_TABLE_NUMBER, RuleCounts, table_index


def test_table_index():
    assert table_index(5, 100) == 105
    assert table_index(0) == BASE_TABLE_NUMBER
    net_ids = [1, 2, 3, 50, 51, 1000]
    indices = [table_index(n, 100) for n in net_ids]
    assert len(set(indices)) == len(net_ids)
    assert all(i - n == 100 for i, n in zip(indices, net_ids))


def test_rule_counts():
    counts = RuleCounts()
    assert counts.count(5) == 0
    assert 5 not in counts

    for _ in range(3):
        counts.increment(5)
    counts.decrement(5)
    assert counts.count(5) == 2
    assert 5 in counts
    assert len(counts) == 1

    counts.decrement(5)
    counts.decrement(5)
    assert counts.count(5) == 0
    assert 5 not in counts
    assert len(counts) == 0


def test_rule_counts_decrement_absent():
    counts = RuleCounts()
    counts.decrement(7)
    assert counts.count(7) == 0
    assert len(counts) == 0

    counts.increment(7)
    counts.decrement(7)
    counts.decrement(7)
    counts.increment(7)
    assert counts.count(7) == 1


def test_rule_counts_modify():
    counts = RuleCounts()
    counts.modify(3, 'add')
    counts.modify(3, 'add')
    counts.modify(4, 'add')
    counts.modify(3, 'del')
    assert counts.count(3) == 1
    assert counts.count(4) == 1
    counts.modify(4, 'del')
    assert len(counts) == 1
