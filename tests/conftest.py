import pytest

import camerasite

SAMPLE_XML = """\
<?xml version="1.0" encoding="UTF-8"?>
<works>
  <work>
    <id>1</id>
    <filename>a.jpg</filename>
    <urls>
      <url type="small">a-thumb.jpg</url>
      <url type="medium">a-medium.jpg</url>
      <url type="large">a-large.jpg</url>
    </urls>
    <exif>
      <model>D90</model>
      <make>Nikon</make>
    </exif>
  </work>
  <work>
    <id>2</id>
    <filename>b.jpg</filename>
    <urls>
      <url type="small">b-thumb.jpg</url>
    </urls>
    <exif>
      <make></make>
    </exif>
  </work>
</works>
"""


def parse(xml_text: str) -> camerasite.SiteGraph:
    return camerasite.build_graph(camerasite.iter_tokens([xml_text.encode("utf-8")]))


@pytest.fixture
def sample_xml():
    return SAMPLE_XML


@pytest.fixture
def sample_graph():
    return parse(SAMPLE_XML)


@pytest.fixture
def feed_file(tmp_path):
    path = tmp_path / "works.xml"
    path.write_text(SAMPLE_XML, encoding="utf-8")
    return path
