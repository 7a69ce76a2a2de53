from confpay.client.application.field_tracker import FieldStateTracker
from confpay.client.domain.entities import FieldName, is_decryptable
from confpay.common.config import ZERO_HANDLE

H1 = "0x" + "1" * 64
H2 = "0x" + "2" * 64


def test_new_field_has_no_handle() -> None:
    tracker = FieldStateTracker()
    assert tracker.current_handle(FieldName.SELF) is None
    assert tracker.clear_value(FieldName.SELF) is None
    assert not tracker.needs_decryption(FieldName.SELF)


def test_record_handle_reports_change() -> None:
    tracker = FieldStateTracker()
    assert tracker.record_handle(FieldName.SELF, H1)
    assert not tracker.record_handle(FieldName.SELF, H1)
    assert tracker.record_handle(FieldName.SELF, H2)
    assert tracker.current_handle(FieldName.SELF) == H2


def test_decryption_recorded_for_current_handle() -> None:
    tracker = FieldStateTracker()
    tracker.record_handle(FieldName.SELF, H1)
    assert tracker.needs_decryption(FieldName.SELF)

    assert tracker.record_decryption(FieldName.SELF, H1, 5000)
    assert tracker.is_decrypted_for(FieldName.SELF, H1)
    assert tracker.clear_value(FieldName.SELF) == 5000
    assert not tracker.needs_decryption(FieldName.SELF)


def test_new_handle_invalidates_clear_value() -> None:
    tracker = FieldStateTracker()
    tracker.record_handle(FieldName.SELF, H1)
    tracker.record_decryption(FieldName.SELF, H1, 5000)

    tracker.record_handle(FieldName.SELF, H2)

    assert not tracker.is_decrypted_for(FieldName.SELF, H1)
    assert not tracker.is_decrypted_for(FieldName.SELF, H2)
    assert tracker.clear_value(FieldName.SELF) is None
    assert tracker.needs_decryption(FieldName.SELF)


def test_late_decryption_for_old_handle_is_dropped() -> None:
    tracker = FieldStateTracker()
    tracker.record_handle(FieldName.SELF, H1)
    tracker.record_handle(FieldName.SELF, H2)

    assert not tracker.record_decryption(FieldName.SELF, H1, 5000)
    assert not tracker.is_decrypted_for(FieldName.SELF, H1)
    assert not tracker.is_decrypted_for(FieldName.SELF, H2)
    assert tracker.clear_value(FieldName.SELF) is None


def test_zero_handle_is_never_decryptable() -> None:
    tracker = FieldStateTracker()
    tracker.record_handle(FieldName.AGGREGATE, ZERO_HANDLE)
    assert not is_decryptable(ZERO_HANDLE)
    assert not is_decryptable(None)
    assert not tracker.needs_decryption(FieldName.AGGREGATE)
    assert tracker.clear_value(FieldName.AGGREGATE) is None


def test_fields_are_independent() -> None:
    tracker = FieldStateTracker()
    tracker.record_handle(FieldName.SELF, H1)
    tracker.record_decryption(FieldName.SELF, H1, 10)
    tracker.record_handle(FieldName.PEER, H2)

    tracker.reset(FieldName.PEER)

    assert tracker.current_handle(FieldName.PEER) is None
    assert tracker.clear_value(FieldName.SELF) == 10
