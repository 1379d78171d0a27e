from html_pages import score

from kicktipp_client.history import extract_head_to_head, extract_home_away
from kicktipp_client.markup import Markers
from kicktipp_client.models import AFTER_EXTRA_TIME, AFTER_PENALTIES, DRAW, LOSS, WIN


def h2h_row(league, round_label, played_at, home, away, home_goals, away_goals, zusatz=""):
    extra = f'<span class="kicktipp-zusatz">{zusatz}</span>' if zusatz else ""
    return (f"<tr><td>{league}</td><td>{round_label}</td><td>{played_at}</td>"
            f"<td>{home}</td><td>{away}</td><td>{score(home_goals, away_goals)}{extra}</td></tr>")


HEAD_TO_HEAD = f"""<html><body>
<table class="tippabgabe"><tbody><tr><td>22.08.25 20:30</td><td>Team Alpha</td><td>Team Beta</td>
<td><input type="text"><input type="text"></td></tr></tbody></table>
<table class="spielinfoDirekt"><tbody>
{h2h_row("1.BL 2024/25", "5. Spieltag", "28.09.24", "Team Beta", "Team Alpha", 1, 5)}
{h2h_row("DFB 2022/23", "Achtelfinale", "01.02.23", "Team Alpha", "Team Beta", 2, 1, "n.V.")}
{h2h_row("DFB 2019/20", "Finale", "04.07.20", "Team Alpha", "Team Beta", 4, 3, "nach Elfmeterschießen")}
</tbody></table>
</body></html>"""


def test_head_to_head_annotations_in_page_order():
    results = extract_head_to_head(HEAD_TO_HEAD, "Team Alpha", "Team Beta")
    assert len(results) == 3
    assert [r.annotation for r in results] == [None, AFTER_EXTRA_TIME, AFTER_PENALTIES]
    first = results[0]
    assert (first.home_team, first.away_team, first.home_goals, first.away_goals) == ("Team Beta", "Team Alpha", 1, 5)
    assert (first.competition, first.round_label, first.played_at) == ("1.BL 2024/25", "5. Spieltag", "28.09.24")
    assert [r.outcome for r in results] == [WIN, WIN, WIN]


def test_head_to_head_keeps_only_the_pairing():
    html = f"""<table class="spielinfoDirekt"><tbody>
    {h2h_row("1.BL", "3. Spieltag", "", "Team Alpha", "Team Beta", 1, 0)}
    {h2h_row("1.BL", "3. Spieltag", "", "Team Gamma", "Team Delta", 2, 2)}
    {h2h_row("1.BL", "20. Spieltag", "", "Team Beta", "Team Alpha", 0, 0)}
    </tbody></table>"""
    results = extract_head_to_head(html, "Team Alpha", "Team Beta")
    assert [(r.home_team, r.away_team) for r in results] == [("Team Alpha", "Team Beta"), ("Team Beta", "Team Alpha")]


def test_unrelated_result_table_is_not_head_to_head():
    html = f"""<html><body>
    <table class="letzteSpiele"><tbody>{h2h_row("1.BL", "1. Spieltag", "", "Team Gamma", "Team Delta", 3, 1)}</tbody></table>
    </body></html>"""
    assert extract_head_to_head(html, "Team Alpha", "Team Beta") == []


def test_unknown_annotation_is_kept_verbatim():
    html = f"""<table class="spielinfoDirekt"><tbody>
    {h2h_row("Pokal", "Runde 1", "", "A", "B", 0, 3, "am grünen Tisch")}
    </tbody></table>"""
    [result] = extract_head_to_head(html, "A", "B")
    assert result.annotation == "am grünen Tisch"
    assert result.outcome == LOSS
    assert result.played_at is None


def test_penalties_win_over_extra_time_in_combined_annotation():
    html = f"""<table class="spielinfoDirekt"><tbody>
    {h2h_row("DFB", "Finale", "", "A", "B", 5, 4, "nach Verlängerung und Elfmeterschießen")}
    {h2h_row("DFB", "Halbfinale", "", "B", "A", 3, 4, "n.V. i.E.")}
    </tbody></table>"""
    assert [r.annotation for r in extract_head_to_head(html, "A", "B")] == [AFTER_PENALTIES, AFTER_PENALTIES]


def test_custom_annotation_markers():
    html = f"""<table class="spielinfoDirekt"><tbody>
    {h2h_row("Cup", "R1", "", "A", "B", 1, 1, "aet")}</tbody></table>"""
    markers = Markers(annotations={"aet": AFTER_EXTRA_TIME})
    assert extract_head_to_head(html, "A", "B", markers)[0].annotation == AFTER_EXTRA_TIME


def test_head_to_head_falls_back_to_unlabelled_result_table():
    html = f"""<html><body>
    <table class="tippabgabe"><tbody><tr><td>x</td><td>A</td><td>B</td></tr></tbody></table>
    <table class="letzteSpiele"><tbody>{h2h_row("1.BL", "1. Spieltag", "", "C", "D", 1, 0)}</tbody></table>
    <table class="irgendwas"><tbody>{h2h_row("1.BL", "1. Spieltag", "", "A", "B", 2, 2)}</tbody></table>
    </body></html>"""
    [result] = extract_head_to_head(html, "A", "B")
    assert (result.home_team, result.away_team) == ("A", "B")
    assert result.outcome == DRAW


def test_missing_head_to_head_table():
    assert extract_head_to_head("<html><body><p>keine Daten</p></body></html>", "A", "B") == []


HOME_AWAY = f"""<html><body>
<table class="spielinfoHeim"><tbody>
  <tr><td>1.BL</td><td class="nw sieg">FC Bayern</td><td class="nw">Mainz 05</td><td>{score(3, 1)}</td></tr>
  <tr><td>1.BL</td><td class="nw">Union Berlin</td><td class="nw remis">FC Bayern</td><td>{score(2, 2)}</td></tr>
  <tr><td>DFB</td><td class="nw">VfL Bochum</td><td class="nw niederlage">FC Bayern</td><td>{score(4, 2)}</td></tr>
  <tr><td>1.BL</td><td class="nw">FC Bayern</td><td class="nw">Werder Bremen</td><td>{score("-", "-")}</td></tr>
  <tr><td>1.BL</td><td class="nw">FC Bayern</td><td class="nw">Kaputt</td><td>{score("a", "1")}</td></tr>
  <tr><td colspan="4">Trenner</td></tr>
</tbody></table>
<table class="spielinfoGast"><tbody>
  <tr><td>1.BL</td><td class="nw">Y</td><td class="nw">Dortmund</td><td>{score(0, 1)}</td></tr>
</tbody></table>
</body></html>"""


def test_home_away_tables_are_independent():
    home, away = extract_home_away(HOME_AWAY, "FC Bayern", "Dortmund")
    assert [(r.home_team, r.away_team) for r in home] == [
        ("FC Bayern", "Mainz 05"), ("Union Berlin", "FC Bayern"), ("VfL Bochum", "FC Bayern"),
        ("FC Bayern", "Werder Bremen"),
    ]
    assert [r.outcome for r in home] == [WIN, DRAW, LOSS, None]
    assert home[3].home_goals is None and not home[3].has_score
    assert [(r.home_goals, r.away_goals, r.outcome) for r in away] == [(0, 1, WIN)]


def test_team_role_read_from_row():
    html = f"""<table class="spielinfoGast"><tbody>
      <tr><td>1.BL</td><td class="nw">Dortmund</td><td class="nw">Y</td><td>{score(0, 1)}</td></tr>
    </tbody></table>"""
    _, away = extract_home_away(html, "X", "Dortmund")
    assert away[0].outcome == LOSS


def test_missing_history_tables():
    assert extract_home_away("<html></html>", "A", "B") == ([], [])
