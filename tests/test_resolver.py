from typing import Dict, List, Optional

import pytest
from factories import line, platform_order

from shipsync.domain import PlatformOrder
from shipsync.errors import AmbiguousMatchError, CriticalMismatchError, NotFoundError
from shipsync.resolver import OrderIdentityResolver


class StubPlatform:
    def __init__(self, search: Optional[Dict[str, List[PlatformOrder]]] = None, by_id=None) -> None:
        self.search = search or {}
        self.by_id = by_id or {}
        self.searched: List[str] = []
        self.looked_up: List[str] = []

    def find_orders_by_name(self, name: str) -> List[PlatformOrder]:
        self.searched.append(name)
        return self.search.get(name, [])

    def get_order_by_id(self, order_id: str) -> Optional[PlatformOrder]:
        self.looked_up.append(order_id)
        return self.by_id.get(order_id)


ORDER_73 = platform_order("5001", "#362673", [line("A")])
ORDER_74 = platform_order("5002", "#362674", [line("B")])


class TestResolveByName:
    def test_picks_exact_match_not_first_result(self):
        platform = StubPlatform(search={"#362673": [ORDER_74, ORDER_73]})
        assert OrderIdentityResolver(platform).resolve("#362673").order_id == "5001"

    def test_near_match_only_is_not_found(self):
        platform = StubPlatform(search={"#362673": [ORDER_74]})
        with pytest.raises(NotFoundError):
            OrderIdentityResolver(platform).resolve("#362673")

    def test_near_match_is_reported_as_ambiguous(self):
        platform = StubPlatform(search={"#362673": [ORDER_74]})
        with pytest.raises(AmbiguousMatchError) as exc_info:
            OrderIdentityResolver(platform).resolve("#362673")
        assert exc_info.value.candidates == [ORDER_74]

    def test_two_exact_matches_are_not_guessed(self):
        twin = platform_order("5003", "#362673", [line("A")])
        platform = StubPlatform(search={"#362673": [ORDER_73, twin]})
        with pytest.raises(AmbiguousMatchError):
            OrderIdentityResolver(platform).resolve("#362673")

    def test_empty_search_is_not_found(self):
        with pytest.raises(NotFoundError):
            OrderIdentityResolver(StubPlatform()).resolve("#362673")

    def test_reference_without_marker_is_searched_with_it(self):
        platform = StubPlatform(search={"#362673": [ORDER_73]})
        assert OrderIdentityResolver(platform).resolve("362673") is ORDER_73
        assert platform.searched == ["#362673"]

    def test_name_comparison_ignores_case(self):
        lettered = platform_order("5004", "#36A100", [line("A")])
        platform = StubPlatform(search={"#36a100": [lettered]})
        assert OrderIdentityResolver(platform).resolve("#36a100") is lettered

    def test_custom_prefix(self):
        order = platform_order("5005", "#1042", [line("A")])
        platform = StubPlatform(search={"#1042": [order]})
        resolver = OrderIdentityResolver(platform, name_prefix="10")
        assert resolver.resolve("1042") is order


class TestResolveById:
    def test_direct_lookup(self):
        order = platform_order("5551234567", "#362673", [line("A")])
        platform = StubPlatform(by_id={"5551234567": order})
        assert OrderIdentityResolver(platform).resolve("5551234567") is order
        assert platform.searched == []

    def test_missing_id_is_not_found(self):
        with pytest.raises(NotFoundError):
            OrderIdentityResolver(StubPlatform()).resolve("5551234567")

    def test_non_numeric_reference_never_reaches_platform(self):
        platform = StubPlatform()
        with pytest.raises(NotFoundError):
            OrderIdentityResolver(platform).resolve("../orders")
        assert platform.looked_up == []

    def test_blank_reference(self):
        with pytest.raises(NotFoundError):
            OrderIdentityResolver(StubPlatform()).resolve("  ")


class TestVerify:
    def test_mismatch_is_critical(self):
        resolver = OrderIdentityResolver(StubPlatform())
        with pytest.raises(CriticalMismatchError) as exc_info:
            resolver.verify("#362673", ORDER_74)
        assert exc_info.value.found_name == "#362674"

    def test_matching_name_passes(self):
        OrderIdentityResolver(StubPlatform()).verify("362673", ORDER_73)

    def test_id_references_are_not_name_checked(self):
        OrderIdentityResolver(StubPlatform()).verify("5551234567", ORDER_74)
