import pytest

from smart_tv.tv_device import InvalidChannelError, NotPoweredError, SmartTV, TVError


def test_starts_off_on_channel_one(tv):
    assert tv.is_on() is False
    tv.turn_on()
    assert tv.get_current_channel() == 1


def test_power_is_idempotent(tv):
    tv.turn_on()
    tv.turn_on()
    assert tv.is_on()
    tv.turn_off()
    tv.turn_off()
    assert not tv.is_on()


@pytest.mark.parametrize("call", [
    lambda t: t.get_channel_count(),
    lambda t: t.get_current_channel(),
    lambda t: t.get_channel_names(),
    lambda t: t.set_channel(2),
    lambda t: t.channel_up(),
    lambda t: t.channel_down(),
])
def test_channel_operations_require_power(tv, call):
    with pytest.raises(NotPoweredError) as exc:
        call(tv)
    assert str(exc.value) == "TV is OFF"
    assert isinstance(exc.value, TVError)


def test_set_channel_accepts_closed_range(tv):
    tv.turn_on()
    for ch in range(1, 6):
        tv.set_channel(ch)
        assert tv.get_current_channel() == ch


@pytest.mark.parametrize("bad", [0, -1, 6, 100])
def test_set_channel_rejects_out_of_range_and_keeps_channel(tv, bad):
    tv.turn_on()
    tv.set_channel(3)
    with pytest.raises(InvalidChannelError) as exc:
        tv.set_channel(bad)
    assert str(exc.value) == "Invalid channel number"
    assert tv.get_current_channel() == 3


def test_channel_up_saturates_at_last_channel(tv):
    tv.turn_on()
    tv.set_channel(5)
    assert tv.channel_up() == 5
    assert tv.get_current_channel() == 5


def test_channel_down_saturates_at_first_channel(tv):
    tv.turn_on()
    assert tv.channel_down() == 1
    assert tv.get_current_channel() == 1


def test_channel_up_and_down_step_by_one(tv):
    tv.turn_on()
    assert tv.channel_up() == 2
    assert tv.channel_up() == 3
    assert tv.channel_down() == 2


def test_power_cycle_preserves_channel(tv):
    tv.turn_on()
    tv.set_channel(4)
    tv.turn_off()
    tv.turn_on()
    assert tv.get_current_channel() == 4


def test_unnamed_catalog_reports_numbers(tv):
    tv.turn_on()
    assert not tv.has_channel_names
    assert tv.get_channel_count() == 5
    assert tv.get_channel_names() == ("1", "2", "3", "4", "5")


def test_channel_names_cannot_be_mutated_through_input_or_result():
    names = ["NRK1", "NRK2", "TV2"]
    tv = SmartTV(channel_names=names)
    tv.turn_on()
    names.append("EXTRA")
    result = tv.get_channel_names()
    assert result == ("NRK1", "NRK2", "TV2")
    assert isinstance(result, tuple)
    assert tv.get_channel_count() == 3


@pytest.mark.parametrize("kwargs", [
    {"channel_count": 0},
    {"channel_count": None},
    {"channel_names": []},
    {"channel_count": 2, "channel_names": ["A", "B", "C"]},
])
def test_rejects_invalid_catalogs(kwargs):
    with pytest.raises(ValueError):
        SmartTV(**kwargs)
