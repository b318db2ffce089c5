from fuelfeed.common.backoff import BackoffPolicy


def test_delay_doubles_from_attempt_zero():
    policy = BackoffPolicy(base_s=1.0, max_s=30.0)
    assert [policy.delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]


def test_delay_is_capped_at_ceiling():
    policy = BackoffPolicy(base_s=1.0, max_s=30.0)
    assert policy.delay(5) == 30.0
    assert policy.delay(50) == 30.0


def test_hint_takes_precedence_over_curve():
    policy = BackoffPolicy(base_s=1.0, max_s=30.0)
    assert policy.delay(0, hint=12.5) == 12.5
    assert policy.delay(3, hint=0) == 0.0
    # Hints above the ceiling are honoured; the provider asked for them.
    assert policy.delay(1, hint=90) == 90.0


def test_negative_hint_clamps_to_zero():
    assert BackoffPolicy().delay(2, hint=-4) == 0.0
