import pytest
from pathlib import Path
from reporting import ReportGenerator
from world import World


def make_history():
    nations = {
        "ALD": {"code": "ALD", "name": "Aldoria"},
        "BRN": {"code": "BRN", "name": "Brennia"},
        "CRV": {"code": "CRV", "name": "Corvania"},
    }
    return [
        {
            "step": 0,
            "events": [
                {"title": "Northern Pact founded", "description": "", "type": "ALLIANCE", "severity": 2},
            ],
            "global_stats": {"living_nations": 3, "active_wars": 0, "total_casualties": 0},
        },
        {
            "step": 1,
            "events": [
                {"title": "Aldoria declares war on Brennia", "description": "A war of conquest.",
                 "type": "WAR_DECLARED", "severity": 3},
            ],
            "global_stats": {"living_nations": 3, "annexed_nations": 0, "active_wars": 1,
                             "coalitions": 1, "total_casualties": 12345},
            "nations": nations,
            "active_wars": [
                {"attacker": "ALD", "defender": "BRN", "goal": "AGGRESSION",
                 "attacker_gain": 11.0, "defender_gain": 0.0, "battles": 2},
            ],
            "coalitions": [
                {"name": "Northern Pact", "icon": "shield", "type": "military",
                 "leader": "BRN", "members": ["BRN", "CRV"]},
            ],
        },
    ]


def test_generate_report(config, tmp_path):
    """Test HTML report generation."""
    generator = ReportGenerator(config)

    report_path = generator.generate_report(make_history(), tmp_path)

    assert report_path == tmp_path / "index.html"
    content = report_path.read_text()
    assert "Conflict Simulation Run" in content
    assert "Aldoria declares war on Brennia" in content
    assert "12,345" in content, "Casualties formatted with separators"
    assert "Northern Pact" in content
    assert "Corvania" in content, "Coalition members shown by name"
    assert "coalition_network.png" not in content


def test_network_image_included(config, tmp_path):
    (tmp_path / "coalition_network.png").write_bytes(b"png")
    report_path = ReportGenerator(config).generate_report(make_history(), tmp_path)
    assert 'src="coalition_network.png"' in report_path.read_text()


def test_report_from_world_run(config, tmp_path):
    world = World(config)
    history = [world.simulate_step(step) for step in range(3)]

    report_path = ReportGenerator(config).generate_report(history, Path(tmp_path))

    content = report_path.read_text()
    assert "NATO" in content
    assert f"{len(world.registry.active_nations())}" in content


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
