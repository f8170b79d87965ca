"""Tests for the command-line interface."""

from unittest.mock import patch

import pytest

from partshop import cli
from partshop.db import fetch_all_products
from partshop.models import VehicleInfo
from partshop.vin import VinDecodeError


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep CLI runs from writing log files into the project."""
    with patch("partshop.cli.setup_logging"):
        yield


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "cli.db")


class TestCli:
    """Tests for each subcommand."""

    def test_seed_and_list(self, db_path, capsys):
        assert cli.main(["--db", db_path, "seed"]) == 0
        assert "Inserted 6 products" in capsys.readouterr().out

        assert cli.main(["--db", db_path, "list", "--category", "braking"]) == 0
        out = capsys.readouterr().out
        assert "Premium Brake Pads - Front" in out
        assert "R89.99" in out
        assert "Page 1 of 1 (1 products)" in out

    def test_list_sorted_and_paged(self, db_path, capsys):
        cli.main(["--db", db_path, "seed"])
        capsys.readouterr()

        cli.main(["--db", db_path, "list", "--sort", "price-high", "--page-size", "2", "--page", "2"])
        out = capsys.readouterr().out
        assert out.index("Shock Absorber") < out.index("Premium Brake Pads")
        assert "Page 2 of 3" in out

    def test_list_empty(self, db_path, capsys):
        cli.main(["--db", db_path, "list", "--search", "nothing"])
        assert "No products found." in capsys.readouterr().out

    def test_seed_from_csv(self, db_path, tmp_path):
        csv_path = tmp_path / "catalog.csv"
        csv_path.write_text("id,name,price,category,stock_quantity\n77,Fuse Kit,4.50,electrical,3\n")
        assert cli.main(["--db", db_path, "seed", "--csv", str(csv_path)]) == 0
        assert [p.name for p in fetch_all_products(db_path)] == ["Fuse Kit"]

    def test_seed_from_missing_csv(self, db_path, tmp_path, capsys):
        assert cli.main(["--db", db_path, "seed", "--csv", str(tmp_path / "missing.csv")]) == 1
        assert "Error" in capsys.readouterr().err

    def test_stats(self, db_path, capsys):
        cli.main(["--db", db_path, "seed"])
        capsys.readouterr()
        assert cli.main(["--db", db_path, "stats"]) == 0
        out = capsys.readouterr().out
        assert "Total products: 6" in out
        assert "Low stock (< 10): 2" in out
        assert "Braking System: 1" in out

    def test_export_csv(self, db_path, tmp_path, capsys):
        cli.main(["--db", db_path, "seed"])
        out_path = tmp_path / "export.csv"
        assert cli.main(["--db", db_path, "export-csv", str(out_path)]) == 0
        assert "Exported 6 products" in capsys.readouterr().out
        assert out_path.read_text().startswith("id,name,price")

    def test_vin(self, db_path, capsys):
        cli.main(["--db", db_path, "seed"])
        capsys.readouterr()
        vehicle = VehicleInfo(make="Toyota", model="Camry", year="2020", engine="2.5L A25A")
        with patch("partshop.cli.decode_vin", return_value=vehicle):
            assert cli.main(["--db", db_path, "vin", "4T1B11HK5LU000000"]) == 0
        out = capsys.readouterr().out
        assert "Vehicle: 2020 Toyota Camry" in out
        assert "Engine: 2.5L A25A" in out
        assert "Premium Brake Pads - Front" in out

    def test_vin_failure(self, db_path, capsys):
        with patch("partshop.cli.decode_vin", side_effect=VinDecodeError("service down")):
            assert cli.main(["--db", db_path, "vin", "1HGCM82633A004352"]) == 1
        assert "service down" in capsys.readouterr().err

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.main([])
