from camerasite import INDEX_PAGE, NO_MAKE_PAGE, THUMBNAIL_LIMIT, render_site
from conftest import parse


def test_sample_site_pages(sample_graph):
    pages = render_site(sample_graph)
    assert set(pages) == {INDEX_PAGE, "Nikon.html", "D90.html", NO_MAKE_PAGE}

    index = pages[INDEX_PAGE]
    assert '<img src="a-thumb.jpg"' in index
    assert '<img src="b-thumb.jpg"' in index
    assert '<option value="Nikon.html">Nikon</option>' in index
    assert '<option value="nomake.html">(no make/generic)</option>' in index

    make_page = pages["Nikon.html"]
    assert make_page.count("<img ") == 1
    assert "a-thumb.jpg" in make_page
    assert '<option value="D90.html">D90</option>' in make_page
    assert 'href="index.html"' in make_page

    model_page = pages["D90.html"]
    assert model_page.count("<img ") == 1
    assert "a-thumb.jpg" in model_page
    assert 'href="Nikon.html"' in model_page
    assert 'href="index.html"' in model_page

    no_make = pages[NO_MAKE_PAGE]
    assert no_make.count("<img ") == 1
    assert "b-thumb.jpg" in no_make


def test_no_make_page_only_when_needed():
    graph = parse('<works><work><id>1</id><model>D90</model><make>Nikon</make></work></works>')
    pages = render_site(graph)
    assert NO_MAKE_PAGE not in pages
    assert "(no make/generic)" not in pages[INDEX_PAGE]


def test_thumbnails_are_capped():
    works = "".join(
        f'<work><id>{i}</id><urls><url type="small">t{i}.jpg</url></urls>'
        f"<model>D90</model><make>Nikon</make></work>"
        for i in range(THUMBNAIL_LIMIT + 3)
    )
    pages = render_site(parse(f"<works>{works}</works>"))

    for name in (INDEX_PAGE, "Nikon.html", "D90.html"):
        assert pages[name].count("<img ") == THUMBNAIL_LIMIT
        assert '"t0.jpg"' in pages[name]
        assert f'"t{THUMBNAIL_LIMIT}.jpg"' not in pages[name]


def test_text_is_escaped():
    graph = parse(
        "<works><work><id>1</id><filename>x&quot;onerror=&quot;alert(1).jpg</filename>"
        '<urls><url type="small">"&gt;&lt;script&gt;x&lt;/script&gt;</url></urls>'
        "<model>&lt;b&gt;M&lt;/b&gt;</model><make>Canon &lt;EOS&gt; &amp; Co</make>"
        "</work></works>"
    )
    pages = render_site(graph)
    assert set(pages) == {INDEX_PAGE, "Canon-EOS-Co.html", "-b-M-b-.html"}

    for html in pages.values():
        assert "<script>" not in html
        assert "<EOS>" not in html
        assert "<b>M" not in html
        assert '"onerror="' not in html

    assert "Canon &lt;EOS&gt; &amp; Co" in pages[INDEX_PAGE]
