def test_import_questline_package() -> None:
    import importlib

    module = importlib.import_module("questline")
    assert module.__version__


def test_import_entry_point_no_side_effects() -> None:
    from questline.main import main

    assert callable(main)


def test_build_engine_over_shipped_definitions() -> None:
    from questline.engine import build_engine

    engine = build_engine()
    assert engine.quests_repo.get("daily_goblin_hunt").title == "Goblin Hunt"
