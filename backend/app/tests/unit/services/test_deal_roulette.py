"""Test the request pipeline from intent to response envelope."""

import asyncio
import math
from unittest.mock import MagicMock

import pytest

from configs import CacheTtlConfig
from steam_deals.models.deal_models import Deal, DealFilterParams, RequestIntent
from steam_deals.models.errors import DealsSourceError, LibraryError, LibraryErrorKind
from steam_deals.services.deal_roulette import DealRouletteService
from steam_deals.services.deals.cheapshark_client import DealsRetriever
from steam_deals.services.library.steam_client import OwnershipRetriever

ORIGIN = "https://deals.example.com"
STEAM_ID = "76561198006409530"


def run(coroutine):
    return asyncio.run(coroutine)


class TestDealRouletteService:
    """Test cases for DealRouletteService.resolve."""

    def setup_method(self) -> None:
        self.deals_retriever = MagicMock(spec=DealsRetriever)
        self.ownership_retriever = MagicMock(spec=OwnershipRetriever)
        self.service = DealRouletteService(self.deals_retriever, self.ownership_retriever)
        self.ttl_config = CacheTtlConfig(
            deals_ttl=86400, steam_default_ttl=604800, steam_id_ttls={STEAM_ID: 3600}
        )
        self.owned_deal = Deal(
            deal_id="owned", steam_app_id="10", savings="90", deal_rating="9"
        )
        self.new_deal = Deal(
            deal_id="new", steam_app_id="30", savings="50", deal_rating="8"
        )

    def test_missing_identity_is_rejected_before_any_fetch(self) -> None:
        status_code, envelope = run(
            self.service.resolve(RequestIntent(), ORIGIN, self.ttl_config)
        )

        assert status_code == 400
        assert envelope.to_payload() == {
            "deal": None,
            "error": "Missing steamId parameter",
            "meta": {"cache": {"dealsTtlSeconds": 86400, "steamTtlSeconds": 604800}},
        }
        self.deals_retriever.retrieve.assert_not_called()
        self.ownership_retriever.retrieve.assert_not_called()

    def test_returns_only_unowned_deal(self) -> None:
        self.deals_retriever.retrieve.return_value = (
            [self.owned_deal, self.new_deal],
            False,
        )
        self.ownership_retriever.retrieve.return_value = ({10, 20}, True)
        intent = RequestIntent(identity=STEAM_ID)

        for _ in range(20):
            status_code, envelope = run(
                self.service.resolve(intent, ORIGIN, self.ttl_config)
            )
            assert status_code == 200
            assert envelope.deal.deal_id == "new"

        payload = envelope.to_payload()
        assert payload["deal"] == {
            "dealId": "new",
            "steamAppId": "30",
            "savings": "50",
            "dealRating": "8",
        }
        assert "error" not in payload
        assert payload["meta"] == {
            "cache": {"dealsTtlSeconds": 86400, "steamTtlSeconds": 3600},
            "cacheHits": {"deals": False, "steam": True},
            "counts": {"totalDeals": 2, "filteredDeals": 1, "ownedAppCount": 2},
            "params": {
                "steamId": STEAM_ID,
                "csMaxAge": "24",
                "csMetacritic": "1",
                "csSteamRating": "1",
                "csUpperPrice": "15",
                "csMinSaving": 0,
                "csMinDealRating": 0,
                "csStoreIds": [1, 3, 11, 15],
            },
        }
        self.deals_retriever.retrieve.assert_called_with(
            intent.filters, ORIGIN, 86400
        )
        self.ownership_retriever.retrieve.assert_called_with(
            STEAM_ID, self.ttl_config, ORIGIN
        )

    def test_no_survivor_is_null_deal_with_200(self) -> None:
        self.deals_retriever.retrieve.return_value = ([self.owned_deal], True)
        self.ownership_retriever.retrieve.return_value = ({10}, True)

        status_code, envelope = run(
            self.service.resolve(RequestIntent(identity=STEAM_ID), ORIGIN, self.ttl_config)
        )

        payload = envelope.to_payload()
        assert status_code == 200
        assert payload["deal"] is None
        assert "error" not in payload
        assert payload["meta"]["counts"]["filteredDeals"] == 0

    def test_nan_thresholds_are_echoed_as_null(self) -> None:
        self.deals_retriever.retrieve.return_value = ([self.new_deal], False)
        self.ownership_retriever.retrieve.return_value = (set(), False)
        intent = RequestIntent(
            identity=STEAM_ID,
            filters=DealFilterParams(min_saving=math.nan, min_deal_rating=7.5),
        )

        status_code, envelope = run(self.service.resolve(intent, ORIGIN, self.ttl_config))

        params = envelope.to_payload()["meta"]["params"]
        assert status_code == 200
        assert envelope.deal is None
        assert params["csMinSaving"] is None
        assert params["csMinDealRating"] == 7.5

    def test_access_denied_maps_to_403(self) -> None:
        self.deals_retriever.retrieve.return_value = ([self.new_deal], False)
        self.ownership_retriever.retrieve.side_effect = LibraryError(
            LibraryErrorKind.ACCESS_DENIED, "profile is private", status_code=403
        )

        status_code, envelope = run(
            self.service.resolve(RequestIntent(identity=STEAM_ID), ORIGIN, self.ttl_config)
        )

        assert status_code == 403
        assert envelope.to_payload() == {
            "deal": None,
            "error": "profile is private",
            "meta": {"cache": {"dealsTtlSeconds": 86400, "steamTtlSeconds": 3600}},
        }

    @pytest.mark.parametrize(
        "deals_effect,steam_effect,expected_message",
        [
            (DealsSourceError("CheapShark API error: 500 Oops", 500), None, "CheapShark API error: 500 Oops"),
            (None, LibraryError(LibraryErrorKind.UNAVAILABLE, "steam down", 500), "steam down"),
        ],
    )
    def test_other_upstream_failures_map_to_502(
        self, deals_effect, steam_effect, expected_message
    ) -> None:
        self.deals_retriever.retrieve.return_value = ([self.new_deal], False)
        self.deals_retriever.retrieve.side_effect = deals_effect
        self.ownership_retriever.retrieve.return_value = (set(), False)
        self.ownership_retriever.retrieve.side_effect = steam_effect

        status_code, envelope = run(
            self.service.resolve(RequestIntent(identity=STEAM_ID), ORIGIN, self.ttl_config)
        )

        assert status_code == 502
        assert envelope.error == expected_message
        assert envelope.deal is None

    def test_access_denied_wins_when_both_sources_fail(self) -> None:
        self.deals_retriever.retrieve.side_effect = DealsSourceError("deals down", 503)
        self.ownership_retriever.retrieve.side_effect = LibraryError(
            LibraryErrorKind.ACCESS_DENIED, "private", 403
        )

        status_code, envelope = run(
            self.service.resolve(RequestIntent(identity=STEAM_ID), ORIGIN, self.ttl_config)
        )

        assert status_code == 403
        assert envelope.error == "private"

    def test_unexpected_errors_propagate(self) -> None:
        self.deals_retriever.retrieve.side_effect = KeyError("bug")
        self.ownership_retriever.retrieve.return_value = (set(), False)

        with pytest.raises(KeyError):
            run(
                self.service.resolve(
                    RequestIntent(identity=STEAM_ID), ORIGIN, self.ttl_config
                )
            )
