from datetime import date

from scheduling.fill_in import FillInPass
from scheduling.placement import add_to_block


def test_fills_first_block_with_room(make_task, make_block, settings):
    full, roomy = make_block(block_number=2), make_block(block_number=3)
    add_to_block(make_task(estimated_minutes=30, cognitive_load="medium"), full, settings)

    review = make_task(category="quick_review", estimated_minutes=8, cognitive_load="light")
    leftover = FillInPass().run([review], [full, roomy])

    assert leftover == []
    assert roomy.assignments[0].task.id == review.id


def test_needs_duration_plus_buffer(make_task, make_block):
    block = make_block(total=45, buffer=5)
    block.used_minutes = 25  # 15 left
    fits = make_task(category="quick_review", estimated_minutes=10, cognitive_load="light")
    too_big = make_task(category="quick_review", estimated_minutes=11, cognitive_load="light")

    leftover = FillInPass().run([too_big, fits], [block])

    assert [a.task.id for a in block.assignments] == [fits.id]
    assert leftover == [too_big]


def test_respects_load_ceiling(make_task, make_block, settings):
    block = make_block()
    add_to_block(make_task(estimated_minutes=10, cognitive_load="heavy"), block, settings)
    leftover = FillInPass().run(
        [make_task(category="quick_review", estimated_minutes=5, cognitive_load="light")], [block]
    )
    assert len(leftover) == 1


def test_ignores_subject_clustering(make_task, make_block, settings):
    block = make_block()
    add_to_block(make_task(estimated_minutes=10, subject="Reading", cognitive_load="light"), block, settings)
    leftover = FillInPass().run(
        [make_task(category="quick_review", estimated_minutes=5, subject="Reading", cognitive_load="light")],
        [block],
    )
    assert leftover == []
    assert len(block.assignments) == 2


def test_sorted_by_due_date_then_duration(make_task):
    a = make_task(estimated_minutes=10, due_date=date(2026, 10, 22))
    b = make_task(estimated_minutes=5, due_date=date(2026, 10, 21))
    c = make_task(estimated_minutes=3)
    d = make_task(estimated_minutes=2)
    assert FillInPass().sort([a, b, c, d]) == [b, a, d, c]
