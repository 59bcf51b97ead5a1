from pricewatch.utils.time import minutes_to_ms, utc_now_ms


def test_minutes_to_ms():
    assert minutes_to_ms(30) == 1_800_000
    assert minutes_to_ms(0.5) == 30_000
    assert minutes_to_ms(0) == 0


def test_utc_now_ms_is_epoch_millis():
    now = utc_now_ms()
    assert isinstance(now, int)
    # sometime after 2023-11 in ms
    assert now > 1_700_000_000_000
