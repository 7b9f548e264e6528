import inreq


def test_all_exports_are_importable():
    for name in inreq.__all__:
        assert hasattr(inreq, name), name


def test_exit_codes_are_exposed_via_outcomes():
    assert inreq.Outcome.SUCCEEDED.exit_code == 0
    assert inreq.Outcome.FAILED.exit_code == 21
    assert inreq.Outcome.REJECTED.exit_code == 22
