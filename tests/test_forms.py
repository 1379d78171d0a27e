from kicktipp_client.forms import (
    FALLBACK_SUBMIT,
    FieldUpdate,
    build_body,
    field_value,
    find_form,
    form_action,
    merge_overlay,
    read_current_fields,
    set_field,
    submit_field,
)
from kicktipp_client.markup import make_soup

FORM = """<html><body>
<form id="other" action="/suche"><input name="q" value="x"></form>
<form id="tippabgabeForm" action="tippabgabe?bonus=false">
  <input type="hidden" name="tippsaisonId" value="123">
  <input type="text" name="spieltippForms[1].heimTipp" value="0">
  <input type="text" name="spieltippForms[1].gastTipp" value="0">
  <input type="text" name="spieltippForms[2].heimTipp" value="">
  <input type="text" name="spieltippForms[2].gastTipp" value="">
  <input type="text" name="gesperrt" value="1" disabled>
  <input type="checkbox" name="joker" value="ja">
  <input type="checkbox" name="erinnerung" value="an" checked>
  <select name="auswahl"><option value="">-</option><option value="7" selected>Sieben</option></select>
  <textarea name="kommentar">Hallo</textarea>
  <button type="submit" name="speichern" value="Tipps speichern">Speichern</button>
</form></body></html>"""


def current():
    return read_current_fields(find_form(make_soup(FORM)))


def test_find_form_prefers_betting_form():
    assert find_form(make_soup(FORM))["id"] == "tippabgabeForm"
    assert find_form(make_soup("<form id='a'></form>"))["id"] == "a"
    assert find_form(make_soup("<p></p>")) is None


def test_read_current_fields():
    assert current() == [
        ("tippsaisonId", "123"),
        ("spieltippForms[1].heimTipp", "0"),
        ("spieltippForms[1].gastTipp", "0"),
        ("spieltippForms[2].heimTipp", ""),
        ("spieltippForms[2].gastTipp", ""),
        ("erinnerung", "an"),
        ("auswahl", "7"),
        ("kommentar", "Hallo"),
    ]


def test_repeated_field_names_are_all_sent():
    form = make_soup("""<form>
      <input type="hidden" name="tippsaisonId" value="123">
      <input type="hidden" name="wettbewerb" value="1">
      <input type="hidden" name="wettbewerb" value="2">
      <input type="checkbox" name="liga" value="bl1" checked>
      <input type="checkbox" name="liga" value="bl2" checked>
      <select name="teams" multiple><option value="a" selected>A</option><option value="b">B</option>
        <option value="c" selected>C</option></select>
      <input type="text" name="spieltippForms[1].heimTipp" value="">
    </form>""").form
    fields = read_current_fields(form)
    assert [v for n, v in fields if n == "wettbewerb"] == ["1", "2"]
    assert [v for n, v in fields if n == "liga"] == ["bl1", "bl2"]
    assert [v for n, v in fields if n == "teams"] == ["a", "c"]

    merged = merge_overlay(fields, [FieldUpdate("fixture 1", (("spieltippForms[1].heimTipp", "2"),))])
    body = build_body(merged.fields, FALLBACK_SUBMIT)
    assert body == [
        ("tippsaisonId", "123"), ("wettbewerb", "1"), ("wettbewerb", "2"), ("liga", "bl1"), ("liga", "bl2"),
        ("teams", "a"), ("teams", "c"), ("spieltippForms[1].heimTipp", "2"), FALLBACK_SUBMIT,
    ]


def test_submit_field_and_fallback():
    form = find_form(make_soup(FORM))
    assert submit_field(form) == ("speichern", "Tipps speichern")
    assert submit_field(make_soup("<form></form>").form) == FALLBACK_SUBMIT


def test_form_action_is_resolved_against_page_url():
    form = find_form(make_soup(FORM))
    assert form_action(form, "https://www.kicktipp.de/c/tippabgabe?spieltagIndex=3") == \
        "https://www.kicktipp.de/c/tippabgabe?bonus=false"
    empty = make_soup("<form action=''></form>").form
    assert form_action(empty, "https://www.kicktipp.de/c/tippabgabe?bonus=true") == \
        "https://www.kicktipp.de/c/tippabgabe?bonus=true"


def bet(fid, h, a):
    return FieldUpdate(f"fixture {fid}", ((f"spieltippForms[{fid}].heimTipp", str(h)),
                                          (f"spieltippForms[{fid}].gastTipp", str(a))))


def test_existing_values_are_kept_without_override():
    result = merge_overlay(current(), [bet(1, 2, 1), bet(2, 3, 0)])
    assert result.applied == ["fixture 2"]
    assert result.skipped == ["fixture 1"]
    fields = dict(result.fields)
    assert fields["spieltippForms[1].heimTipp"] == "0"
    assert fields["spieltippForms[1].gastTipp"] == "0"
    assert fields["spieltippForms[2].heimTipp"] == "3"
    assert fields["tippsaisonId"] == "123"
    assert [n for n, _ in result.fields] == [n for n, _ in current()]


def test_override_replaces_existing_values():
    fields = dict(merge_overlay(current(), [bet(1, 2, 1)], override=True).fields)
    assert fields["spieltippForms[1].heimTipp"] == "2"
    assert fields["spieltippForms[1].gastTipp"] == "1"


def test_per_unit_override_predicate():
    result = merge_overlay(current(), [bet(1, 2, 1)], override=lambda u: u.label == "fixture 9")
    assert result.skipped == ["fixture 1"]


def test_half_filled_unit_counts_as_present():
    fields = set_field(current(), "spieltippForms[2].heimTipp", "1")
    assert merge_overlay(fields, [bet(2, 3, 0)]).skipped == ["fixture 2"]


def test_merge_does_not_mutate_input():
    fields = current()
    merge_overlay(fields, [bet(2, 3, 0)])
    assert field_value(fields, "spieltippForms[2].heimTipp") == ""


def test_set_field_appends_unknown_name():
    assert set_field([("a", "1")], "b", "2") == [("a", "1"), ("b", "2")]
    assert set_field([("a", "1"), ("a", "2")], "a", "3") == [("a", "3")]


def test_build_body_appends_submit_once():
    body = build_body([("a", "1")], ("submitbutton", "Submit"))
    assert body == [("a", "1"), ("submitbutton", "Submit")]
    assert build_body([("submitbutton", "x")], ("submitbutton", "Submit")) == [("submitbutton", "x")]
