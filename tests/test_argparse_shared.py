"""Tests for argparse_shared module."""

import argparse

import pytest

from src.argparse_shared import add_episode_name_argument, add_log_level_argument, get_base_parser


class TestGetBaseParser:
    """Tests for get_base_parser function."""

    def test_returns_argument_parser(self):
        """Test that get_base_parser returns an ArgumentParser."""
        parser = get_base_parser()
        assert isinstance(parser, argparse.ArgumentParser)

    def test_has_env_file_argument(self):
        """Test that the parser has --env-file argument."""
        parser = get_base_parser()
        args = parser.parse_args(["-e", "/path/to/.env"])
        assert args.env_file == "/path/to/.env"

    def test_env_file_defaults_to_none(self):
        """Test that env-file defaults to None."""
        parser = get_base_parser()
        args = parser.parse_args([])
        assert args.env_file is None


class TestAddLogLevelArgument:
    """Tests for add_log_level_argument function."""

    def test_defaults_to_info(self):
        parser = argparse.ArgumentParser()
        add_log_level_argument(parser)
        assert parser.parse_args([]).log_level == "INFO"

    def test_short_form(self):
        parser = argparse.ArgumentParser()
        add_log_level_argument(parser)
        assert parser.parse_args(["-l", "DEBUG"]).log_level == "DEBUG"


class TestAddEpisodeNameArgument:
    """Tests for add_episode_name_argument function."""

    def test_positional_episode_name(self):
        parser = argparse.ArgumentParser()
        add_episode_name_argument(parser)
        assert parser.parse_args(["Ep-100"]).episode_name == "Ep-100"

    def test_episode_name_required(self):
        parser = argparse.ArgumentParser()
        add_episode_name_argument(parser)
        with pytest.raises(SystemExit):
            parser.parse_args([])
