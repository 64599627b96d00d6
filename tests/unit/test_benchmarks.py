import pytest

from restodiag.benchmarks import Benchmark, BenchmarkResolver
from restodiag.config import default_config
from restodiag.models import BusinessType


def make_resolver() -> BenchmarkResolver:
    return default_config().resolver()


def test_resolves_known_types_by_label_and_value():
    resolver = make_resolver()
    assert resolver.resolve("快餐").table_turnover == 4.5
    assert resolver.resolve("hot_pot").avg_spending == 80
    assert resolver.resolve(BusinessType.TEA_DRINKS).revenue_per_sqm == 8000


@pytest.mark.parametrize("label", ["", None, "food truck", "FAST_FOOD", 42])
def test_unknown_types_resolve_to_other(label):
    resolver = make_resolver()
    assert resolver.resolve(label) == resolver[BusinessType.OTHER]
    assert resolver.resolve(label).gross_margin == pytest.approx(0.55)


def test_incomplete_table_is_rejected():
    entry = Benchmark(table_turnover=3.0, gross_margin=0.55, takeaway_ratio=0.3, revenue_per_sqm=5000, avg_spending=50)
    with pytest.raises(ValueError, match="missing business types"):
        BenchmarkResolver({BusinessType.OTHER: entry})
