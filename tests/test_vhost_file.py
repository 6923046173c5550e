"""Tests for parsing and rendering vhost files."""

from passengerpane.core.vhost_file import (
    ParsedVhost,
    default_directory_block,
    parse_vhost,
    read_vhost_file,
    render_vhost,
)

from conftest import SAMPLE_VHOST


class TestParseVhost:

    def test_parses_all_directives(self):
        parsed = parse_vhost(SAMPLE_VHOST)
        assert parsed.vhostname == "*:80"
        assert parsed.host == "blog.local"
        assert parsed.path == "/Users/me/Sites/blog"
        assert parsed.environment == "production"
        assert parsed.allow_mod_rewrite is True
        assert parsed.missing_fields() == []

    def test_user_defined_data_keeps_indentation(self):
        parsed = parse_vhost(SAMPLE_VHOST)
        assert parsed.user_defined_data == (
            '  <directory "/Users/me/Sites/blog/public">\n'
            '    Order allow,deny\n'
            '    Allow from all\n'
            '  </directory>'
        )

    def test_directive_order_does_not_matter(self):
        text = (
            "<VirtualHost 127.0.0.1:8080>\n"
            "  RailsAllowModRewrite off\n"
            "  RailsEnv development\n"
            "  DocumentRoot \"/srv/shop/public\"\n"
            "  ServerName shop.local\n"
            "</VirtualHost>\n"
        )
        parsed = parse_vhost(text)
        assert parsed.vhostname == "127.0.0.1:8080"
        assert parsed.host == "shop.local"
        assert parsed.path == "/srv/shop"
        assert parsed.environment == "development"
        assert parsed.allow_mod_rewrite is False
        assert parsed.user_defined_data == ""

    def test_missing_directives_are_none(self):
        parsed = parse_vhost("<VirtualHost *:80>\n  ServerName only.local\n</VirtualHost>\n")
        assert parsed.host == "only.local"
        assert parsed.path is None
        assert parsed.environment is None
        assert parsed.allow_mod_rewrite is None
        assert set(parsed.missing_fields()) == {"path", "environment", "allow_mod_rewrite"}

    def test_document_root_without_public_is_kept_as_user_data(self):
        parsed = parse_vhost('<VirtualHost *:80>\n  DocumentRoot "/srv/static"\n</VirtualHost>')
        assert parsed.path is None
        assert parsed.user_defined_data == '  DocumentRoot "/srv/static"'

    def test_only_first_server_name_is_consumed(self):
        text = "<VirtualHost *:80>\n  ServerName a.local\n  ServerName b.local\n</VirtualHost>"
        parsed = parse_vhost(text)
        assert parsed.host == "a.local"
        assert parsed.user_defined_data == "  ServerName b.local"

    def test_unknown_environment_is_not_parsed(self):
        parsed = parse_vhost("RailsEnv staging\n")
        assert parsed.environment is None
        assert parsed.user_defined_data == "RailsEnv staging"

    def test_empty_text(self):
        assert parse_vhost("") == ParsedVhost()
        assert parse_vhost(None) == ParsedVhost()

    def test_read_vhost_file(self, tmp_path):
        vhost_file = tmp_path / "blog.local.vhost.conf"
        vhost_file.write_text(SAMPLE_VHOST, encoding="utf-8")
        assert read_vhost_file(vhost_file).host == "blog.local"


class TestRenderVhost:

    def test_render_then_parse_keeps_fields(self):
        record = {
            "host": "my-app.local",
            "path": "/Users/me/Sites/My_App",
            "environment": "production",
            "allow_mod_rewrite": True,
            "vhostname": "*:80",
            "user_defined_data": default_directory_block("/Users/me/Sites/My_App"),
        }
        parsed = parse_vhost(render_vhost(record))
        assert parsed.host == record["host"]
        assert parsed.path == record["path"]
        assert parsed.environment == record["environment"]
        assert parsed.allow_mod_rewrite is True
        assert parsed.vhostname == record["vhostname"]
        assert parsed.user_defined_data == record["user_defined_data"]

    def test_render_layout(self):
        text = render_vhost({"host": "a.local", "path": "/srv/a", "environment": "development",
                             "allow_mod_rewrite": False, "vhostname": "*:80", "user_defined_data": ""})
        assert text == (
            "<VirtualHost *:80>\n"
            "  ServerName a.local\n"
            "  DocumentRoot \"/srv/a/public\"\n"
            "  RailsEnv development\n"
            "  RailsAllowModRewrite off\n"
            "</VirtualHost>\n"
        )

    def test_reparsing_sample_is_stable(self):
        parsed = parse_vhost(SAMPLE_VHOST)
        rendered = render_vhost({
            "host": parsed.host, "path": parsed.path, "environment": parsed.environment,
            "allow_mod_rewrite": parsed.allow_mod_rewrite, "vhostname": parsed.vhostname,
            "user_defined_data": parsed.user_defined_data,
        })
        assert rendered == SAMPLE_VHOST


def test_default_directory_block():
    assert default_directory_block("/srv/a") == (
        '  <directory "/srv/a/public">\n'
        '    Order allow,deny\n'
        '    Allow from all\n'
        '  </directory>'
    )
