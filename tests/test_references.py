"""
Tests for the include tracker that drives cascades.
"""

import pytest
from conftest import write

from dnaweb.errors import CircularReferenceError
from dnaweb.references import strip_include_profile


class TestStripIncludeProfile:
    def test_profile_is_removed(self):
        assert strip_include_profile("header:server") == "header"

    def test_drive_letters_are_kept(self):
        assert strip_include_profile("C:\\parts\\header") == "C:\\parts\\header"
        assert strip_include_profile("C:/parts/header") == "C:/parts/header"

    def test_no_profile(self):
        assert strip_include_profile("header") == "header"

    def test_more_than_one_colon_is_kept(self):
        assert strip_include_profile("a:b:c") == "a:b:c"
        assert strip_include_profile("C:\\parts\\header:server") == "C:\\parts\\header:server"


class TestIncludeTracker:
    def test_resolved_include_paths(self, site, html_engine):
        write(site, "_header.dnaweb", "<!--@ partial @-->")
        write(site, "_footer.dnaweb", "<!--@ partial @-->")
        page = write(site, "page.dnaweb",
                     "<!--@ include header:server @-->\n<!--@ include footer @-->\n<!--@ include missing @-->")

        paths = html_engine.tracker.resolved_include_paths(str(page))

        assert paths == [str(site / "_header.dnaweb"), str(site / "_footer.dnaweb")]

    def test_direct_and_indirect_referencers(self, site, html_engine):
        write(site, "_p.dnaweb", "<!--@ partial @-->")
        write(site, "_x.dnaweb", "<!--@ partial @-->\n<!--@ include p @-->")
        write(site, "y.dnaweb", "<!--@ include x @-->")
        write(site, "z.dnaweb", "<!--@ include p @-->")
        html_engine.tracker.rebuild_all()

        found = html_engine.tracker.find_referencers(str(site / "_p.dnaweb"))

        assert sorted(found) == sorted([str(site / "_x.dnaweb"), str(site / "z.dnaweb"), str(site / "y.dnaweb")])

    def test_unreferenced_file(self, site, html_engine):
        page = write(site, "page.dnaweb", "body")
        html_engine.tracker.rebuild_all()

        assert html_engine.tracker.find_referencers(str(page)) == []

    def test_cycle_is_detected(self, site, html_engine):
        write(site, "_a.dnaweb", "<!--@ partial @-->\n<!--@ include b @-->")
        write(site, "_b.dnaweb", "<!--@ partial @-->\n<!--@ include a @-->")
        html_engine.tracker.rebuild_all()

        with pytest.raises(CircularReferenceError, match="Circular reference detected to"):
            html_engine.tracker.find_referencers(str(site / "_b.dnaweb"))

    def test_diamond_is_not_a_cycle(self, site, html_engine):
        write(site, "_p.dnaweb", "<!--@ partial @-->")
        write(site, "_c.dnaweb", "<!--@ partial @-->")
        write(site, "x.dnaweb", "<!--@ include p @-->\n<!--@ include c @-->")
        write(site, "y.dnaweb", "<!--@ include p @-->\n<!--@ include c @-->")
        html_engine.tracker.rebuild_all()

        found = html_engine.tracker.find_referencers(str(site / "_p.dnaweb"))

        assert sorted(found) == [str(site / "x.dnaweb"), str(site / "y.dnaweb")]
