import csv
import io
import json
import os
import tempfile
import unittest
from datetime import datetime, timezone
from decimal import Decimal

from .exceptions import UnsupportedLocaleError
from .locales import ExportLocale
from .models import (
    CashTransaction,
    NonTradeSecurityTransaction,
    OtherTransaction,
    SecurityTransaction,
    TransactionDetail,
)
from .reporting import build_export_row, create_filename, export_as_json, render_csv, save_csv

INSTANT = datetime(2024, 3, 1, 9, 15, 0, tzinfo=timezone.utc)


def cash(cash_type, **kwargs):
    defaults = dict(id="tx1", type="CASH_TRANSACTION", status="SETTLED", currency="EUR",
                    last_event_datetime=INSTANT, amount=Decimal("12.5"), cash_transaction_type=cash_type)
    defaults.update(kwargs)
    return CashTransaction(**defaults)


class TestBuildExportRow(unittest.TestCase):

    def test_distribution_uses_related_isin(self):
        tx = cash("DISTRIBUTION", related_isin="DE000A", description="Dividend payout")
        row = build_export_row(tx, ExportLocale.EN)
        self.assertEqual(row.isin, "DE000A")
        self.assertEqual(row.type_label, "Dividend")
        self.assertEqual(row.security_name, "Dividend payout")
        self.assertEqual(row.note, "tx1")
        self.assertEqual(build_export_row(tx, ExportLocale.DE).type_label, "Dividende")

    def test_non_distribution_moves_description_into_note(self):
        tx = cash("WITHDRAWAL", description="Monthly fee")
        row = build_export_row(tx, ExportLocale.EN)
        self.assertEqual(row.note, "tx1 Monthly fee")
        self.assertEqual(row.security_name, "")
        self.assertEqual(row.type_label, "Removal")
        self.assertEqual(row.isin, "")

    def test_non_distribution_without_description(self):
        row = build_export_row(cash("INTEREST", description=None), ExportLocale.DE)
        self.assertEqual(row.note, "tx1")
        self.assertEqual(row.type_label, "Zinsen")

    def test_input_is_not_mutated(self):
        tx = cash("DEPOSIT", description="Transfer")
        build_export_row(tx, ExportLocale.DE)
        self.assertEqual(tx.id, "tx1")
        self.assertEqual(tx.description, "Transfer")
        self.assertEqual(tx.type, "CASH_TRANSACTION")

    def test_security_transaction_with_details(self):
        tx = SecurityTransaction(
            id="s1", type="SECURITY_TRANSACTION", status="SETTLED", currency="EUR",
            last_event_datetime=INSTANT, description="Apple Inc.", amount=Decimal("-500"),
            side="SELL", quantity=Decimal("2.5"), isin="US0378331005",
            details=TransactionDetail(fees=Decimal("0.99"), taxes=None, market_valuation=Decimal("499.01")),
        )
        row = build_export_row(tx, ExportLocale.DE)
        self.assertEqual(row.as_list(), [
            "01.03.2024", "10:15:00", "Verkauf", "Apple Inc.", "US0378331005", "-500,00", "2,50",
            "EUR", "0,99", "", "499,01", "s1",
        ])

    def test_security_transaction_without_details(self):
        tx = SecurityTransaction(id="s2", type="SECURITY_TRANSACTION", side="BUY", isin="US1")
        row = build_export_row(tx, ExportLocale.EN)
        self.assertEqual((row.fees, row.taxes, row.gross_amount), ("", "", ""))
        self.assertEqual((row.date, row.time), ("", ""))
        self.assertEqual(row.type_label, "Buy")

    def test_other_variants_keep_native_type(self):
        non_trade = NonTradeSecurityTransaction(
            id="n1", type="NON_TRADE_SECURITY_TRANSACTION", isin="IE00B4L5Y983",
            quantity=Decimal("3"), description="Transfer in")
        row = build_export_row(non_trade, ExportLocale.EN)
        self.assertEqual(row.type_label, "NON_TRADE_SECURITY_TRANSACTION")
        self.assertEqual(row.isin, "IE00B4L5Y983")
        self.assertEqual(row.shares, "3.00")

        other = OtherTransaction(id="o1", type="SAVINGS_PLAN", description="Plan")
        self.assertEqual(build_export_row(other, ExportLocale.EN).type_label, "SAVINGS_PLAN")


class TestRenderCsv(unittest.TestCase):

    def test_header_and_delimiters(self):
        de = render_csv([], ExportLocale.DE)
        en = render_csv([], "en-US")
        self.assertEqual(de, "Datum;Uhrzeit;Typ;Wertpapiername;ISIN;Wert;Stück;Buchungswährung;Gebühren;Steuern;Bruttobetrag;Notiz\n")
        self.assertEqual(en, "Date,Time,Type,Security Name,ISIN,Value,Shares,Transaction Currency,Fees,Taxes,Gross Amount,Note\n")

    def test_field_containing_delimiter_is_quoted(self):
        tx = OtherTransaction(id="o1", type="X", description="Smith, John")
        text = render_csv([tx], ExportLocale.EN)
        rows = list(csv.reader(io.StringIO(text)))
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[1][3], "Smith, John")
        self.assertEqual(len(rows[1]), 12)

    def test_unsupported_locale(self):
        with self.assertRaises(UnsupportedLocaleError):
            render_csv([], "fr-FR")


class TestFiles(unittest.TestCase):

    def test_create_filename(self):
        now = datetime(2024, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc)
        self.assertEqual(create_filename("csv", now), "scalable_transactions_export_20240506T070809.csv")

    def test_save_csv_and_json(self):
        now = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
        tx = cash("DEPOSIT", description="Einzahlung")
        with tempfile.TemporaryDirectory() as tmp:
            out_dir = os.path.join(tmp, "exports")
            path = save_csv("Datum;Notiz\n01.01.2024;Stück\n", out_dir, now=now)
            self.assertEqual(path.name, "scalable_transactions_export_20240506T070809.csv")
            with open(path, encoding="utf-8") as f:
                self.assertEqual(f.read(), "Datum;Notiz\n01.01.2024;Stück\n")

            json_path = export_as_json([tx], out_dir, now=now)
            with open(json_path, encoding="utf-8") as f:
                data = json.load(f)
            self.assertEqual(data[0]["id"], "tx1")
            self.assertEqual(data[0]["amount"], "12.5")


if __name__ == '__main__':
    unittest.main()
