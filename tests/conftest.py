import pytest
import struct
import sys
import zipfile
import zlib
from io import BytesIO
from pathlib import Path
from PIL import Image

# Add src to sys.path so we can import ombea_toolkit
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from ombea_toolkit.core.models import Question, RosterEntry  # noqa: E402


# ─────────────────────────────────────────────────────────────────────────────
# Minimal template package
# ─────────────────────────────────────────────────────────────────────────────

P_NS = "http://schemas.openxmlformats.org/presentationml/2006/main"
A_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PR_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
REL = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/"

TEMPLATE_GUID = "0A1B2C3D-0000-4000-8000-00000000TMPL"

_PML = f'xmlns:a="{A_NS}" xmlns:r="{R_NS}" xmlns:p="{P_NS}"'
_DECL = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'


def _rels(*entries):
    body = "".join(
        f'<Relationship Id="{rid}" Type="{REL}{kind}" Target="{target}"/>'
        for rid, kind, target in entries
    )
    return f'{_DECL}<Relationships xmlns="{PR_NS}">{body}</Relationships>'


def _layout(name):
    return (
        f'{_DECL}<p:sldLayout {_PML} preserve="1">'
        f'<p:cSld name="{name}"><p:spTree>'
        '<p:nvGrpSpPr><p:cNvPr id="1" name=""/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr>'
        '<p:grpSpPr/></p:spTree></p:cSld>'
        '<p:clrMapOvr><a:masterClrMapping/></p:clrMapOvr></p:sldLayout>'
    )


def _slide(text="Bienvenue"):
    return (
        f'{_DECL}<p:sld {_PML}><p:cSld><p:spTree>'
        '<p:nvGrpSpPr><p:cNvPr id="1" name=""/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr>'
        '<p:grpSpPr/>'
        '<p:sp><p:nvSpPr><p:cNvPr id="2" name="Titre 1"/><p:cNvSpPr/>'
        '<p:nvPr><p:ph type="title"/></p:nvPr></p:nvSpPr><p:spPr/>'
        f'<p:txBody><a:bodyPr/><a:p><a:r><a:t>{text}</a:t></a:r></a:p></p:txBody></p:sp>'
        '</p:spTree></p:cSld><p:clrMapOvr><a:masterClrMapping/></p:clrMapOvr></p:sld>'
    )


def build_template_parts(with_tags: bool = False) -> dict:
    """Parts of a one-slide template with a title and a participants layout."""
    ct = "application/vnd.openxmlformats-officedocument.presentationml"
    overrides = [
        ("/ppt/presentation.xml", f"{ct}.presentation.main+xml"),
        ("/ppt/slideMasters/slideMaster1.xml", f"{ct}.slideMaster+xml"),
        ("/ppt/slideLayouts/slideLayout1.xml", f"{ct}.slideLayout+xml"),
        ("/ppt/slideLayouts/slideLayout2.xml", f"{ct}.slideLayout+xml"),
        ("/ppt/slides/slide1.xml", f"{ct}.slide+xml"),
        ("/docProps/app.xml", "application/vnd.openxmlformats-officedocument.extended-properties+xml"),
        ("/docProps/core.xml", "application/vnd.openxmlformats-package.core-properties+xml"),
    ]
    if with_tags:
        overrides.append(("/ppt/tags/tag1.xml", f"{ct}.tags+xml"))
    content_types = (
        f'{_DECL}<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
        '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
        '<Default Extension="xml" ContentType="application/xml"/>'
        + "".join(f'<Override PartName="{n}" ContentType="{t}"/>' for n, t in overrides)
        + "</Types>"
    )
    presentation = (
        f'{_DECL}<p:presentation {_PML}>'
        '<p:sldMasterIdLst><p:sldMasterId id="2147483648" r:id="rId1"/></p:sldMasterIdLst>'
        '<p:sldIdLst><p:sldId id="256" r:id="rId2"/></p:sldIdLst>'
        '<p:sldSz cx="12192000" cy="6858000"/><p:notesSz cx="6858000" cy="9144000"/>'
        '</p:presentation>'
    )
    master = (
        f'{_DECL}<p:sldMaster {_PML}><p:cSld><p:spTree>'
        '<p:nvGrpSpPr><p:cNvPr id="1" name=""/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr>'
        '<p:grpSpPr/></p:spTree></p:cSld>'
        '<p:clrMap bg1="lt1" tx1="dk1" bg2="lt2" tx2="dk2" accent1="accent1" accent2="accent2" '
        'accent3="accent3" accent4="accent4" accent5="accent5" accent6="accent6" hlink="hlink" '
        'folHlink="folHlink"/>'
        '<p:sldLayoutIdLst><p:sldLayoutId id="2147483649" r:id="rId1"/>'
        '<p:sldLayoutId id="2147483650" r:id="rId2"/></p:sldLayoutIdLst>'
        '</p:sldMaster>'
    )
    app = (
        f'{_DECL}<Properties xmlns="http://schemas.openxmlformats.org/officeDocument/2006/extended-properties" '
        'xmlns:vt="http://schemas.openxmlformats.org/officeDocument/2006/docPropsVTypes">'
        '<Words>1</Words><Paragraphs>1</Paragraphs><Slides>1</Slides>'
        '<HeadingPairs><vt:vector size="2" baseType="variant">'
        '<vt:variant><vt:lpstr>Titres des diapositives</vt:lpstr></vt:variant>'
        '<vt:variant><vt:i4>1</vt:i4></vt:variant></vt:vector></HeadingPairs>'
        '<TitlesOfParts><vt:vector size="1" baseType="lpstr"><vt:lpstr>Bienvenue</vt:lpstr>'
        '</vt:vector></TitlesOfParts></Properties>'
    )
    core = (
        f'{_DECL}<cp:coreProperties '
        'xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties" '
        'xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:dcterms="http://purl.org/dc/terms/" '
        'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
        '<dc:title>Template</dc:title>'
        '<dcterms:created xsi:type="dcterms:W3CDTF">2024-01-01T00:00:00Z</dcterms:created>'
        '<dcterms:modified xsi:type="dcterms:W3CDTF">2024-01-01T00:00:00Z</dcterms:modified>'
        '</cp:coreProperties>'
    )

    slide_rels = [("rId1", "slideLayout", "../slideLayouts/slideLayout1.xml")]
    if with_tags:
        slide_rels.append(("rId2", "tags", "../tags/tag1.xml"))

    parts = {
        "[Content_Types].xml": content_types,
        "_rels/.rels": _rels(("rId1", "officeDocument", "ppt/presentation.xml")),
        "ppt/presentation.xml": presentation,
        "ppt/_rels/presentation.xml.rels": _rels(
            ("rId1", "slideMaster", "slideMasters/slideMaster1.xml"),
            ("rId2", "slide", "slides/slide1.xml"),
            ("rId3", "theme", "theme/theme1.xml"),
        ),
        "ppt/slideMasters/slideMaster1.xml": master,
        "ppt/slideMasters/_rels/slideMaster1.xml.rels": _rels(
            ("rId1", "slideLayout", "../slideLayouts/slideLayout1.xml"),
            ("rId2", "slideLayout", "../slideLayouts/slideLayout2.xml"),
            ("rId3", "theme", "../theme/theme1.xml"),
        ),
        "ppt/slideLayouts/slideLayout1.xml": _layout("Title Slide Layout"),
        "ppt/slideLayouts/_rels/slideLayout1.xml.rels": _rels(
            ("rId1", "slideMaster", "../slideMasters/slideMaster1.xml")
        ),
        "ppt/slideLayouts/slideLayout2.xml": _layout("Participants Slide Layout"),
        "ppt/slideLayouts/_rels/slideLayout2.xml.rels": _rels(
            ("rId1", "slideMaster", "../slideMasters/slideMaster1.xml")
        ),
        "ppt/slides/slide1.xml": _slide(),
        "ppt/slides/_rels/slide1.xml.rels": _rels(*slide_rels),
        "ppt/theme/theme1.xml": f'{_DECL}<a:theme xmlns:a="{A_NS}" name="Office"/>',
        "docProps/app.xml": app,
        "docProps/core.xml": core,
    }
    if with_tags:
        parts["ppt/tags/tag1.xml"] = (
            f'{_DECL}<p:tagLst {_PML}><p:tag name="OR_SLIDE_GUID" val="{TEMPLATE_GUID}"/></p:tagLst>'
        )
    return {name: text.encode("utf-8") for name, text in parts.items()}


def zip_parts(parts: dict) -> bytes:
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in parts.items():
            zf.writestr(name, data)
    return buffer.getvalue()


# ─────────────────────────────────────────────────────────────────────────────
# Response-session documents
# ─────────────────────────────────────────────────────────────────────────────


def build_results_xml(devices, questions) -> bytes:
    """
    Populated ORSession.xml.

    Args:
        devices: Device serials; respondent ids are 1..n in this order
        questions: List of (guid, {answer_id: points}, [(device, answer_id, time)])
    """
    respondent_ids = {device: str(i) for i, device in enumerate(devices, start=1)}
    q_xml = []
    for index, (guid, scores, answers) in enumerate(questions, start=1):
        guid_attr = f' SlideGUID="{guid}"' if guid else ""
        answers_xml = "".join(f'<ors:Answer ID="{a}" Points="{p}"/>' for a, p in scores.items())
        rows = []
        for device, answer_id, time in answers:
            time_attr = f' Time="{time}"' if time else ""
            rid = respondent_ids.get(device, device)
            rows.append(
                f'<ors:Response RespondentID="{rid}"{time_attr}>'
                f'<ors:Part><ors:IntVal>{answer_id}</ors:IntVal></ors:Part></ors:Response>'
            )
        q_xml.append(
            f'<ors:Question ID="{index}"{guid_attr}><ors:Answers>{answers_xml}</ors:Answers>'
            f'<ors:Responses>{"".join(rows)}</ors:Responses></ors:Question>'
        )
    respondents = "".join(
        f'<rl:Respondent ID="{rid}"><rl:Devices><rl:Device>{device}</rl:Device></rl:Devices></rl:Respondent>'
        for device, rid in respondent_ids.items()
    )
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<ors:ORSession xmlns:rl="http://www.ombea.com/response/respondentlist" '
        'xmlns:ors="http://www.ombea.com/response/session" ORVersion="0" SessionVersion="4">'
        f'<ors:Questions>{"".join(q_xml)}</ors:Questions>'
        '<ors:RespondentList RespondentListVersion="3">'
        '<rl:RespondentHeaders><rl:DeviceIDHeader Index="1"/></rl:RespondentHeaders>'
        f'<rl:Respondents>{respondents}</rl:Respondents></ors:RespondentList>'
        '</ors:ORSession>'
    ).encode("utf-8")


def build_results_archive(devices, questions) -> bytes:
    return zip_parts({
        "Session_OMBEA.pptx": b"PK",
        "ORSession.xml": build_results_xml(devices, questions),
    })


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def template_parts():
    return build_template_parts()


@pytest.fixture
def tagged_template_parts():
    return build_template_parts(with_tags=True)


@pytest.fixture
def template_guid():
    return TEMPLATE_GUID


@pytest.fixture
def layout_xml():
    """Factory for a bare layout part with the given display name."""
    return lambda name: _layout(name).encode("utf-8")


@pytest.fixture
def zip_package():
    return zip_parts


@pytest.fixture
def template_bytes():
    return zip_parts(build_template_parts())


@pytest.fixture
def tagged_template_bytes():
    return zip_parts(build_template_parts(with_tags=True))


@pytest.fixture
def template_path(tmp_path: Path, template_bytes: bytes) -> Path:
    path = tmp_path / "template.pptx"
    path.write_bytes(template_bytes)
    return path


@pytest.fixture
def results_archive():
    """Factory for a returned delivery archive; see build_results_xml."""
    return build_results_archive


@pytest.fixture
def results_xml():
    return build_results_xml


@pytest.fixture
def sample_questions():
    return [
        Question(1, "Quelle est la couleur du ciel ?", ("Bleu", "Vert", "Rouge"), correct_index=0,
                 theme="securite", block="A"),
        Question(2, "Combien font 2 + 2 ?", ("3", "4"), correct_index=1, theme="securite", block="A"),
        Question(3, "Le feu est-il chaud ?", ("Vrai", "Faux"), correct_index=0, duration=15,
                 theme="incendie", block="B"),
    ]


@pytest.fixture
def sample_roster():
    return [
        RosterEntry("102030", "Ada", "Lovelace", organization="Analytical"),
        RosterEntry("102031", "Alan", "Turing"),
    ]


@pytest.fixture
def sample_image(tmp_path: Path):
    """Create a simple test image."""
    img = Image.new("RGB", (200, 100), color="white")
    img_path = tmp_path / "sample.png"
    img.save(img_path)
    return img_path


@pytest.fixture
def png_bytes():
    buffer = BytesIO()
    Image.new("RGB", (400, 200), color="blue").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def oversized_png():
    """PNG declaring 20000x20000 pixels; Pillow refuses it on open."""
    def chunk(kind, data):
        body = kind + data
        return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body) & 0xFFFFFFFF)

    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", struct.pack(">IIBBBBB", 20000, 20000, 8, 2, 0, 0, 0))
        + chunk(b"IDAT", zlib.compress(b"\x00" * 16))
        + chunk(b"IEND", b"")
    )
