"""
Tests for the fetch_ticket command-line tool.
"""

import json
import sys

import pytest

import fetch_ticket


def _run(monkeypatch, products_file, *args):
    monkeypatch.setattr(sys, "argv", ["fetch_ticket.py", *args, "--products", str(products_file)])
    fetch_ticket.main()


def test_prints_proof_ticket(monkeypatch, capsys, products_file):
    _run(monkeypatch, products_file, "brochure-a", "Letter")

    ticket = json.loads(capsys.readouterr().out)
    assert ticket["Job"]["JobType"] == "Proof"
    assert ticket["Document"]["Id"] == 5522


def test_set_values(monkeypatch, capsys, products_file):
    _run(monkeypatch, products_file, "brochure-a", "A4", "--kind", "print", "--set", "eventDate=29/01/2026")

    ticket = json.loads(capsys.readouterr().out)
    expressions = {
        c["PlanObjectName"]: c["PlanObjectExpression"]
        for c in ticket["Plan"]["Customizations"]
    }
    assert expressions["EventDate"] == "#29/01/2026#"


def test_unknown_product_exits(monkeypatch, capsys, products_file):
    with pytest.raises(SystemExit) as exc_info:
        _run(monkeypatch, products_file, "nope", "A4")

    assert exc_info.value.code == 1
    assert "ERROR" in capsys.readouterr().err


def test_bad_set_syntax_exits(monkeypatch, products_file):
    with pytest.raises(SystemExit):
        _run(monkeypatch, products_file, "brochure-a", "A4", "--set", "eventDate")
