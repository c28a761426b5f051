"""
排序策略单元测试
"""

import math
import random
from itertools import combinations

import pytest

from valuerank.core.errors import InvalidDecision, DuplicateItemError, UnknownStrategyError
from valuerank.core.models import Item
from valuerank.infra.ranking.state import RankingConfig
from valuerank.infra.ranking.strategies import (
    StrategyType,
    ExhaustivePairwiseStrategy,
    DivideAndConquerMergeStrategy,
    InteractiveMergeStrategy,
    EloRatingStrategy,
    create_strategy,
    calculate_expected_comparisons,
    calculate_recommended_comparisons,
)


def _items(n):
    return [Item(id=f'v{i}', name=f'value {i}') for i in range(n)]


def _run(strategy, state, chooser):
    """驱动策略直到完成，返回依次出现的配对"""
    pairs = []
    while not strategy.is_complete(state):
        request = strategy.next_comparison(state)
        pairs.append(request.pair)
        strategy.record_decision(state, request.item1.id, request.item2.id, chooser(request))
    return pairs


def first(request):
    return request.item1.id


def second(request):
    return request.item2.id


ALL_STRATEGIES = [t.value for t in StrategyType]


@pytest.mark.parametrize('strategy_name', ALL_STRATEGIES)
@pytest.mark.parametrize('n', [0, 1, 2, 5, 12])
def test_every_item_appears_once(strategy_name, n):
    """测试所有策略: 最终结果包含每个输入条目且仅一次"""
    strategy = create_strategy(strategy_name, RankingConfig(seed=5))
    state = strategy.init(_items(n))
    _run(strategy, state, first)

    ranked_ids = [entry.item.id for entry in strategy.top_k(state, n)]
    assert sorted(ranked_ids) == sorted(f'v{i}' for i in range(n))
    assert len(ranked_ids) == len(set(ranked_ids))
    assert [entry.rank for entry in strategy.top_k(state, n)] == list(range(1, n + 1))


@pytest.mark.parametrize('strategy_name', ALL_STRATEGIES)
def test_trivial_sessions_complete_immediately(strategy_name):
    """测试0或1个条目时立即完成"""
    strategy = create_strategy(strategy_name)
    for n in (0, 1):
        state = strategy.init(_items(n))
        assert strategy.is_complete(state)
        assert strategy.next_comparison(state) is None
        assert strategy.progress(state)['percentage'] == 100.0


def test_exhaustive_comparison_count():
    """测试全配对: 5项恰好10次比较，每对一次"""
    strategy = ExhaustivePairwiseStrategy()
    state = strategy.init(_items(5))

    pairs = _run(strategy, state, first)

    assert len(pairs) == 10
    assert len(set(map(frozenset, pairs))) == 10
    assert [d.sequence for d in state.decisions] == list(range(1, 11))


def test_exhaustive_end_to_end_even_index_wins():
    """测试10项全配对，偶数位置的条目总是获胜"""
    strategy = ExhaustivePairwiseStrategy()
    state = strategy.init(_items(10))

    def even_wins(request):
        index1 = int(request.item1.id[1:])
        index2 = int(request.item2.id[1:])
        if index1 % 2 == 0 or index2 % 2 == 1:
            return request.item1.id
        return request.item2.id

    pairs = _run(strategy, state, even_wins)

    assert len(pairs) == 45
    top3 = strategy.top_k(state, 3)
    assert [entry.item.id for entry in top3] == ['v0', 'v2', 'v4']
    assert [entry.score for entry in top3] == [9, 8, 7]

    top5_ids = [entry.item.id for entry in strategy.top_k(state, 5)]
    assert top5_ids == ['v0', 'v2', 'v4', 'v6', 'v8']


def test_divide_and_conquer_four_items():
    """测试分治归并: 4项预生成轨迹恰好4次比较"""
    strategy = DivideAndConquerMergeStrategy()
    state = strategy.init(_items(4))

    assert strategy.progress(state)['total'] == 4
    pairs = _run(strategy, state, second)

    assert pairs == [('v0', 'v1'), ('v2', 'v3'), ('v0', 'v2'), ('v1', 'v2')]


def test_divide_and_conquer_bound():
    """测试分治归并主轨迹不超过 N * ceil(log2 N)"""
    for n in range(2, 11):
        strategy = DivideAndConquerMergeStrategy()
        state = strategy.init(_items(n))
        pairs = _run(strategy, state, first)
        assert len(pairs) <= n * math.ceil(math.log2(n))


def test_divide_and_conquer_planned_comparisons():
    """测试批量获取剩余计划比较"""
    strategy = DivideAndConquerMergeStrategy()
    state = strategy.init(_items(4))

    planned = strategy.planned_comparisons(state)
    assert [p.pair for p in planned] == [('v0', 'v1'), ('v2', 'v3'), ('v0', 'v2'), ('v1', 'v2')]
    assert [p.sequence for p in planned] == [1, 2, 3, 4]

    request = strategy.next_comparison(state)
    strategy.record_decision(state, request.item1.id, request.item2.id, request.item1.id)
    assert len(strategy.planned_comparisons(state)) == 3


def test_divide_and_conquer_tie_break_round():
    """测试第10/11名同分时追加同分组内全部两两比较"""
    strategy = DivideAndConquerMergeStrategy()
    state = strategy.init(_items(12))
    assert strategy.progress(state)['total'] == 20

    for _ in range(20):
        request = strategy.next_comparison(state)
        strategy.record_decision(state, request.item1.id, request.item2.id, request.item2.id)

    # 胜场为1的8项跨越第10/11名边界
    tied = ['v1', 'v2', 'v4', 'v5', 'v7', 'v8', 'v10', 'v11']
    assert state.tie_break_rounds == 1
    assert strategy.progress(state)['total'] == 48
    assert not strategy.is_complete(state)

    tie_pairs = _run(strategy, state, first)

    assert len(tie_pairs) == 28
    assert set(map(frozenset, tie_pairs)) == set(map(frozenset, combinations(tied, 2)))
    assert strategy.is_complete(state)
    assert state.completed == 48
    assert [e.item.id for e in strategy.top_k(state, 3)] == ['v1', 'v2', 'v4']


def test_interactive_merge_four_items():
    """测试交互式归并: 左侧总是获胜时4项需要4次比较"""
    strategy = InteractiveMergeStrategy()
    state = strategy.init(_items(4))

    pairs = _run(strategy, state, first)

    assert pairs == [('v0', 'v1'), ('v2', 'v3'), ('v0', 'v2'), ('v1', 'v2')]
    assert [(e.item.id, e.score) for e in strategy.top_k(state, 4)] == [
        ('v0', 2), ('v1', 1), ('v2', 1), ('v3', 0)
    ]


def test_interactive_merge_is_adaptive():
    """测试下一对取决于之前的选择"""
    strategy = InteractiveMergeStrategy()

    state_first = strategy.init(_items(4))
    state_second = strategy.init(_items(4))

    pairs_first = _run(strategy, state_first, first)
    pairs_second = _run(strategy, state_second, second)

    assert pairs_first[2] == ('v0', 'v2')
    assert pairs_second[2] == ('v1', 'v3')
    assert strategy.merged_order(state_second) == ['v3', 'v2', 'v1', 'v0']


def test_interactive_merge_sorts_by_preference():
    """测试一致偏好下归并结果与真实偏好顺序一致"""
    strategy = InteractiveMergeStrategy()
    items = _items(9)
    strength = {item.id: s for item, s in zip(items, [3, 8, 1, 6, 0, 7, 2, 5, 4])}
    state = strategy.init(items)

    def stronger(request):
        if strength[request.item1.id] > strength[request.item2.id]:
            return request.item1.id
        return request.item2.id

    _run(strategy, state, stronger)

    expected = sorted(strength, key=strength.get, reverse=True)
    assert strategy.merged_order(state) == expected


def test_interactive_merge_bound():
    """测试交互式归并比较次数不超过 N * ceil(log2 N)"""
    rng = random.Random(0)
    config = RankingConfig(cutoff=100)
    for n in range(2, 21):
        strategy = InteractiveMergeStrategy(config)
        state = strategy.init(_items(n))
        pairs = _run(strategy, state, lambda r: rng.choice(r.pair))
        assert len(pairs) <= n * math.ceil(math.log2(n))
        assert strategy.progress(state)['total'] == len(pairs)


def test_interactive_merge_progress_never_decreases():
    """测试无边界决胜时交互式归并的进度百分比单调不减"""
    strategy = InteractiveMergeStrategy()
    state = strategy.init(_items(7))

    last = strategy.progress(state)['percentage']
    while not strategy.is_complete(state):
        request = strategy.next_comparison(state)
        strategy.record_decision(state, request.item1.id, request.item2.id, request.item2.id)
        current = strategy.progress(state)['percentage']
        assert current >= last
        last = current
    assert last == 100.0


def test_interactive_merge_tie_break_round():
    """
    测试交互式归并的边界决胜: 12项、总选第二项

    归并结束时胜场 v1 = v3 = v6 = 1，跨越第10/11名边界，
    归并 24 次之后追加 C(3,2) = 3 次比较，共 27 次。
    """
    strategy = InteractiveMergeStrategy()
    state = strategy.init(_items(12))

    while not state.merge.finished:
        request = strategy.next_comparison(state)
        strategy.record_decision(state, request.item1.id, request.item2.id, second(request))

    assert state.completed == 24
    tied = strategy.tie_breaker.find_tied_group(state)
    assert tied == ['v1', 'v3', 'v6']
    assert state.tie_break_rounds == 1
    assert state.queue == list(combinations(tied, 2))
    assert strategy.progress(state)['total'] == 27

    pairs = _run(strategy, state, second)
    assert pairs == list(combinations(tied, 2))
    assert strategy.is_complete(state)
    assert state.tie_break_rounds == 1
    assert strategy.progress(state)['total'] == state.completed == 27
    assert [e.item.id for e in strategy.top_k(state, 3)] == ['v11', 'v5', 'v6']


def test_top_k_returns_ranked_snapshot():
    """测试top_k返回带名次的条目副本，之后的决策不影响已返回的结果"""
    strategy = ExhaustivePairwiseStrategy()
    state = strategy.init(_items(3))

    request = strategy.next_comparison(state)
    strategy.record_decision(state, request.item1.id, request.item2.id, request.item1.id)
    top = strategy.top_k(state, 3)

    assert [entry.item.rank for entry in top] == [1, 2, 3]
    assert top[0].item.id == 'v0'
    assert top[0].item.score == 1

    request = strategy.next_comparison(state)
    strategy.record_decision(state, request.item1.id, request.item2.id, request.item1.id)

    assert state.scores['v0'] == 2
    assert top[0].item.score == 1
    assert state.get_item('v0').rank is None


def test_elo_update_through_strategy():
    """测试ELO策略: 同分时胜者+16、败者-16"""
    strategy = EloRatingStrategy(RankingConfig(target_comparisons=1, seed=0))
    state = strategy.init(_items(2))

    request = strategy.next_comparison(state)
    winner, loser = request.item1.id, request.item2.id
    strategy.record_decision(state, winner, loser, winner)

    assert state.scores[winner] == 1016
    assert state.scores[loser] == 984
    assert state.get_item(winner).score == 1016
    assert strategy.is_complete(state)


def test_elo_target_comparisons():
    """测试ELO策略的比较次数 T"""
    strategy = EloRatingStrategy(RankingConfig(seed=9))
    state = strategy.init(_items(10))

    assert strategy.progress(state)['total'] == 22
    pairs = _run(strategy, state, second)
    assert len(pairs) == 22

    # 2项时 floor(2*1/4) = 0，无需比较
    state = strategy.init(_items(2))
    assert strategy.is_complete(state)


def test_calculate_recommended_comparisons():
    """测试推荐比较次数及上限"""
    assert calculate_recommended_comparisons(10) == 22
    assert calculate_recommended_comparisons(20) == 60
    assert calculate_recommended_comparisons(100) == 150
    assert calculate_recommended_comparisons(1) == 0


def test_calculate_expected_comparisons():
    """测试归并预期比较次数"""
    assert calculate_expected_comparisons(0) == 0
    assert calculate_expected_comparisons(1) == 0
    assert calculate_expected_comparisons(8) == 24
    assert calculate_expected_comparisons(10) == 34


@pytest.mark.parametrize('strategy_name', ALL_STRATEGIES)
def test_top_k_is_idempotent(strategy_name):
    """测试两次调用top_k结果相同"""
    strategy = create_strategy(strategy_name, RankingConfig(seed=2))
    state = strategy.init(_items(6))
    for _ in range(3):
        request = strategy.next_comparison(state)
        if request is None:
            break
        strategy.record_decision(state, request.item1.id, request.item2.id, request.item2.id)

    assert strategy.top_k(state, 6) == strategy.top_k(state, 6)
    assert strategy.top_k(state, 0) == []
    assert len(strategy.top_k(state, 100)) == 6


@pytest.mark.parametrize('strategy_name', ALL_STRATEGIES)
def test_next_comparison_is_idempotent(strategy_name):
    """测试未作答前重复获取返回同一比较且不改变状态"""
    strategy = create_strategy(strategy_name, RankingConfig(seed=4))
    state = strategy.init(_items(8))

    request = strategy.next_comparison(state)
    snapshot = state.snapshot()

    assert strategy.next_comparison(state) is request
    assert state.snapshot() == snapshot


@pytest.mark.parametrize('strategy_name', ALL_STRATEGIES)
def test_invalid_winner_leaves_state_unchanged(strategy_name):
    """测试胜者不属于比较双方时拒绝决策且状态不变"""
    strategy = create_strategy(strategy_name, RankingConfig(seed=8))
    state = strategy.init(_items(8))
    request = strategy.next_comparison(state)
    other = next(i.id for i in state.items if i.id not in request.pair)
    snapshot = state.snapshot()

    with pytest.raises(InvalidDecision):
        strategy.record_decision(state, request.item1.id, request.item2.id, other)

    assert state.snapshot() == snapshot
    assert strategy.next_comparison(state) is request


def test_invalid_decisions_rejected():
    """测试各类无效决策"""
    strategy = ExhaustivePairwiseStrategy()
    state = strategy.init(_items(4))

    # 尚未获取比较
    with pytest.raises(InvalidDecision):
        strategy.record_decision(state, 'v0', 'v1', 'v0')

    request = strategy.next_comparison(state)
    assert request.pair == ('v0', 'v1')

    with pytest.raises(InvalidDecision):
        strategy.record_decision(state, 'v0', 'missing', 'v0')
    with pytest.raises(InvalidDecision):
        strategy.record_decision(state, 'v2', 'v3', 'v2')
    with pytest.raises(InvalidDecision):
        strategy.record_decision(state, 'v0', 'v0', 'v0')

    # 顺序颠倒仍然有效
    strategy.record_decision(state, 'v1', 'v0', 'v1')
    assert state.scores['v1'] == 1
    assert state.decisions[0].item1_id == 'v1'


def test_record_after_completion_rejected():
    """测试排序完成后拒绝新的决策"""
    strategy = ExhaustivePairwiseStrategy()
    state = strategy.init(_items(2))
    request = strategy.next_comparison(state)
    strategy.record_decision(state, request.item1.id, request.item2.id, request.item1.id)

    assert strategy.is_complete(state)
    assert strategy.next_comparison(state) is None
    with pytest.raises(InvalidDecision):
        strategy.record_decision(state, 'v0', 'v1', 'v0')


def test_duplicate_ids_rejected():
    """测试重复id"""
    with pytest.raises(DuplicateItemError):
        ExhaustivePairwiseStrategy().init([Item(id='a', name='x'), Item(id='a', name='y')])


def test_duplicate_names_rank_independently():
    """测试同名不同id的条目独立排序"""
    strategy = ExhaustivePairwiseStrategy()
    state = strategy.init([Item(id='a', name='same'), Item(id='b', name='same')])
    _run(strategy, state, second)

    assert [(e.item.id, e.score) for e in strategy.top_k(state, 2)] == [('b', 1), ('a', 0)]


def test_input_items_not_mutated():
    """测试宿主传入的条目对象不被修改"""
    items = _items(3)
    strategy = ExhaustivePairwiseStrategy()
    state = strategy.init(items)
    _run(strategy, state, first)

    assert all(item.score == 0 for item in items)
    assert state.get_item('v0').score == 2


def test_progress_report():
    """测试进度报告"""
    strategy = ExhaustivePairwiseStrategy()
    state = strategy.init(_items(5))

    assert strategy.progress(state) == {'completed': 0, 'total': 10, 'percentage': 0.0}

    request = strategy.next_comparison(state)
    strategy.record_decision(state, request.item1.id, request.item2.id, request.item1.id)
    assert strategy.progress(state)['percentage'] == 10.0


def test_create_strategy():
    """测试按名称和枚举创建策略"""
    assert isinstance(create_strategy('elo'), EloRatingStrategy)
    assert isinstance(create_strategy(StrategyType.EXHAUSTIVE), ExhaustivePairwiseStrategy)
    assert isinstance(create_strategy('divide_and_conquer'), DivideAndConquerMergeStrategy)
    assert isinstance(create_strategy('interactive_merge'), InteractiveMergeStrategy)

    with pytest.raises(UnknownStrategyError):
        create_strategy('bubble_sort')
