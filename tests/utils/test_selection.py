from catalog_sync.utils.selection import prefer_better_voted, prefer_wider, select_best


def _image(width: int | None = None, vote: float | None = None, name: str = "") -> dict:
    return {"file_path": f"/{name or width}.jpg", "width": width, "vote_average": vote}


def test_select_best_picks_widest_regardless_of_position() -> None:
    candidates = [_image(100), _image(300), None, _image(200)]
    assert select_best(candidates, prefer_wider) == _image(300)

    assert select_best([_image(300), _image(100), None], prefer_wider) == _image(300)
    assert select_best([None, _image(100), _image(300)], prefer_wider) == _image(300)


def test_select_best_never_prefers_null_candidates() -> None:
    assert select_best([_image(300), None], prefer_wider) == _image(300)
    assert select_best([None, _image(50)], prefer_wider) == _image(50)
    assert select_best([None, None], prefer_wider) is None
    assert select_best([], prefer_wider) is None


def test_select_best_keeps_first_on_ties() -> None:
    first = _image(100, name="first")
    second = _image(100, name="second")
    assert select_best([first, second], prefer_wider) is first


def test_missing_metric_never_wins_over_present_metric() -> None:
    unrated = _image(500, vote=None, name="unrated")
    rated = _image(100, vote=5.2, name="rated")
    assert select_best([unrated, rated], prefer_better_voted) is rated
    assert select_best([rated, unrated], prefer_better_voted) is rated


def test_poster_and_backdrop_metrics_are_independent() -> None:
    wide = _image(1920, vote=4.0, name="wide")
    popular = _image(1280, vote=8.5, name="popular")
    assert select_best([wide, popular], prefer_wider) is wide
    assert select_best([wide, popular], prefer_better_voted) is popular


def test_select_best_with_custom_predicate_folds_left_to_right() -> None:
    seen: list[tuple[int, int]] = []

    def prefer_last(current: int, challenger: int) -> bool:
        seen.append((current, challenger))
        return True

    assert select_best([1, 2, 3], prefer_last) == 3
    assert seen == [(1, 2), (2, 3)]
