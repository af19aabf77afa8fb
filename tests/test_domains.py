from domains import hostname, normalize, validate

import pytest


class TestValidate:
    def test_bare_domain(self):
        assert validate("example.com") is True

    def test_full_url(self):
        assert validate("https://www.reddit.com/r/all?sort=new") is True

    def test_not_a_url(self):
        assert validate("not a url") is False

    def test_single_label_rejected(self):
        assert validate("localhost") is False

    def test_short_tld_rejected(self):
        assert validate("example.c") is False

    def test_numeric_tld_rejected(self):
        assert validate("192.168.0.1") is False

    def test_empty_host(self):
        assert validate("http://") is False
        assert validate("") is False

    def test_bad_port_fails_closed(self):
        assert validate("example.com:99999") is False

    def test_non_string_fails_closed(self):
        assert validate(None) is False

    def test_underscore_and_hyphen_labels(self):
        assert validate("my_site.some-cdn.net") is True


class TestNormalize:
    def test_subdomain_and_path_dropped(self):
        assert normalize("https://sub.example.com/path") == "example.com"

    def test_bare_domain_unchanged(self):
        assert normalize("twitter.com") == "twitter.com"

    def test_case_folded(self):
        assert normalize("WWW.YouTube.COM") == "youtube.com"

    def test_port_dropped(self):
        assert normalize("http://news.ycombinator.com:443/item") == "ycombinator.com"

    def test_multi_part_suffix_keeps_last_two_labels(self):
        assert normalize("www.example.co.uk") == "co.uk"

    def test_hostname_requires_host(self):
        with pytest.raises(ValueError):
            hostname("http://")
