import datetime as dt

from ecosense import sustainability


def test_daily_tip_rotates_by_day_of_year():
    assert sustainability.daily_tip(dt.date(2024, 1, 1)).title == "Reduce Plastic Waste"
    assert sustainability.daily_tip(dt.date(2024, 1, 7)).title == "Energy Conservation"
    assert sustainability.daily_tip(dt.date(2024, 1, 8)) == sustainability.daily_tip(dt.date(2024, 1, 1))


def test_tips_for_excludes_todays_tip_from_previous():
    tips = sustainability.tips_for(dt.date(2024, 1, 1))
    assert tips.daily_tip.title == "Reduce Plastic Waste"
    assert len(tips.previous_tips) == sustainability.PREVIOUS_TIP_COUNT
    assert all(t.title != tips.daily_tip.title for t in tips.previous_tips)
    assert [i.title for i in tips.local_initiatives] == [
        "Hanoi Plastic Reduction Program",
        "New Bus Routes",
        "Community Garden Initiative",
    ]


def test_community_events_are_copies_of_the_catalog():
    events = sustainability.community_events()
    assert events[0].title == "Hanoi River Cleanup"
    assert all(not e.user_joined for e in events)
    events.clear()
    assert sustainability.community_events()
