import pytest

from client_ledger.auth.gate import AllowAll, PinGate
from client_ledger.exceptions import AuthorizationError

@pytest.mark.unit
class TestPinGate:

    def test_correct_pin(self):
        PinGate("2580").authorize("edit", "2580")

    @pytest.mark.parametrize("pin", ["0000", "", None, "25800"])
    def test_wrong_pin(self, pin):
        with pytest.raises(AuthorizationError, match="Incorrect PIN!"):
            PinGate("2580").authorize("delete", pin)

    def test_pin_is_not_shown_in_repr(self):
        assert "2580" not in repr(PinGate("2580"))

    def test_allow_all(self):
        AllowAll().authorize("delete", None)
