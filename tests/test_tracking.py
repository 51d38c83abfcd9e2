import pytest

from shipsync.errors import ValidationError
from shipsync.tracking import (
    CARRIER_RULES,
    detect_carrier_from_url,
    normalize_tracking,
    resolve_carrier,
    split_tracking_numbers,
)


class TestCarrierDetection:
    @pytest.mark.parametrize(
        "number, carrier, url",
        [
            ("01475240430954", "DPD", "https://tracking.dpd.de/parcelstatus?query=01475240430954"),
            ("014752404309541", "DPD", "https://tracking.dpd.de/parcelstatus?query=014752404309541"),
            ("YNZX9BHU", "GLS", "https://gls-group.eu/EU/en/parcel-tracking?match=YNZX9BHU"),
            ("123456789012345678", "PostNord", "https://www.postnord.dk/en/track-and-trace?id=123456789012345678"),
            ("1Z999AA10123456784", "UPS", "https://www.ups.com/track?tracknum=1Z999AA10123456784"),
            ("1234567890", "DHL", "https://www.dhl.com/en/express/tracking.html?AWB=1234567890"),
        ],
    )
    def test_pattern_rows(self, number, carrier, url):
        shipment = normalize_tracking(number)
        assert shipment.carrier == carrier
        assert shipment.numbers == [number]
        assert shipment.urls == [url]

    def test_dao_pattern_is_shadowed_by_dpd(self):
        dao_rule = next(rule for rule in CARRIER_RULES if rule.carrier == "DAO")
        assert dao_rule.matches("71234567890123")
        assert dao_rule.url_for("71234567890123") == "https://www.dao.as/tracking?code=71234567890123"
        assert normalize_tracking("71234567890123").carrier == "DPD"

    def test_unknown_number_uses_fallback_carrier_and_url(self):
        shipment = normalize_tracking("AB-123", "Bring", "https://tracking.bring.com/tracking/AB-123")
        assert shipment.carrier == "Bring"
        assert shipment.urls == ["https://tracking.bring.com/tracking/AB-123"]

    def test_fallback_url_number_parameter_is_rewritten_per_parcel(self):
        shipment = normalize_tracking("AB12,CD34", None, "https://track.example.com/parcel?query=AB12,CD34")
        assert shipment.urls == [
            "https://track.example.com/parcel?query=AB12",
            "https://track.example.com/parcel?query=CD34",
        ]
        assert shipment.carrier == "Other"

    def test_fallback_carrier_inferred_from_url(self):
        shipment = normalize_tracking("XX-1", None, "https://www.postnord.dk/en/track-and-trace?id=XX-1")
        assert shipment.carrier == "PostNord"

    def test_no_fallback_gives_empty_url(self):
        shipment = normalize_tracking("XX-1")
        assert shipment.carrier == "Other"
        assert shipment.urls == [""]

    def test_gls_hint_and_number(self):
        shipment = normalize_tracking("YNZX9BHU", "GLS")
        assert shipment.carrier == "GLS"
        assert "match=YNZX9BHU" in shipment.urls[0]


class TestShipmentNormalization:
    def test_two_dpd_parcels(self):
        shipment = normalize_tracking("01475240430954,01475240430955")
        assert shipment.carrier == "DPD"
        assert [parcel.carrier for parcel in shipment.parcels] == ["DPD", "DPD"]
        first, second = shipment.urls
        assert first.replace("01475240430954", "") == second.replace("01475240430955", "")

    def test_mixed_carriers_resolve_by_plurality(self):
        shipment = normalize_tracking("YNZX9BHU,01475240430954,01475240430955,1234567890")
        assert shipment.carrier == "DPD"
        assert len(shipment.urls) == len(shipment.numbers) == 4
        assert shipment.urls[0].endswith("match=YNZX9BHU")
        assert shipment.urls[3].endswith("AWB=1234567890")

    def test_tie_goes_to_first_seen(self):
        assert normalize_tracking("YNZX9BHU,01475240430954").carrier == "GLS"
        assert normalize_tracking("01475240430954,YNZX9BHU").carrier == "DPD"

    def test_whitespace_and_empty_tokens_are_dropped(self):
        assert split_tracking_numbers(" 1234567890 , ,0123456789,") == ["1234567890", "0123456789"]

    def test_empty_input_is_rejected(self):
        with pytest.raises(ValidationError):
            normalize_tracking(" , ")

    def test_resolve_carrier_counts(self):
        assert resolve_carrier(["GLS", "DPD", "DPD"]) == "DPD"
        assert resolve_carrier(["UPS"]) == "UPS"

    @pytest.mark.parametrize(
        "url, carrier",
        [
            ("https://www.dhl.com/x", "DHL"),
            ("https://gls-group.eu/track", "GLS"),
            ("https://sporing.bring.dk/", "Bring"),
            ("https://www.fedex.com/", "FedEx"),
            ("https://unknown.example.com/", "Other"),
            (None, "Other"),
        ],
    )
    def test_carrier_from_url(self, url, carrier):
        assert detect_carrier_from_url(url) == carrier
