from infrastructure.lib.config.accounts import Account, Accounts


class TestAccounts:
    """Test suite for the account table."""

    def test_load_reads_dotenv_file(self, tmp_path):
        """Test that each line of the accounts file becomes an account."""
        # Given
        accounts_file = tmp_path / ".accounts.env"
        accounts_file.write_text("beta=111111111111\nprod=333333333333\n")

        # When
        accounts = Accounts.load(str(accounts_file))

        # Then
        assert len(accounts) == 2
        assert accounts.get("beta") == Account(name="beta", account_id="111111111111")
        assert accounts.prod.account_id == "333333333333"

    def test_load_missing_file_gives_empty_table(self, tmp_path):
        """Test that a missing accounts file is not an error by itself."""
        # When
        accounts = Accounts.load(str(tmp_path / "missing.env"))

        # Then
        assert len(accounts) == 0
        assert accounts.beta is None

    def test_blank_values_are_ignored(self):
        """Test that an environment with a blank account id is left out."""
        # When
        accounts = Accounts.from_mapping({"beta": "  ", "gamma": None, "prod": " 333333333333 "})

        # Then
        assert "beta" not in accounts
        assert "gamma" not in accounts
        assert accounts.prod.account_id == "333333333333"

    def test_lookup_is_case_insensitive(self):
        """Test that environment names match regardless of case."""
        # Given
        accounts = Accounts.from_mapping({"BETA": "111111111111"})

        # Then
        assert accounts.get("Beta").account_id == "111111111111"
        assert "beta" in accounts
