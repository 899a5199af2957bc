"""
Оверлеи utils.watermark на PDF из pypdf и логотипе из Pillow (без базы и сервисов).
"""
import io
import os
import tempfile
import unittest

from PIL import Image
from pypdf import PdfReader, PdfWriter
from testkit import make_pdf

from studymint.core.errors import PipelineDegraded
from studymint.utils.watermark import (
    PdfReadError,
    build_preview,
    load_brand_image,
    read_pdf,
    stamp_full,
)

PREVIEW_KW = dict(
    page_limit=5,
    watermark_text="StudyMint Preview",
    text_opacity=0.5,
    brand_opacity=0.2,
    cta_title="Preview ended",
    cta_lines=["This document has {total} pages. You have seen the first {shown}."],
)


def _brand(tmp: str, mode: str = "RGBA"):
    path = os.path.join(tmp, "logo.png")
    color = (10, 120, 80, 128) if mode == "RGBA" else (10, 120, 80)
    Image.new(mode, (800, 200), color).save(path)
    return load_brand_image(path)


class TestBrandImage(unittest.TestCase):
    def test_thumbnail_and_alpha(self):
        with tempfile.TemporaryDirectory() as tmp:
            brand = _brand(tmp)
        self.assertEqual((brand.width, brand.height), (512, 128))
        self.assertIsNotNone(brand.alpha)

    def test_opaque_image_has_no_mask(self):
        with tempfile.TemporaryDirectory() as tmp:
            brand = _brand(tmp, mode="RGB")
        self.assertIsNone(brand.alpha)

    def test_missing_or_unset_path_degrades(self):
        with self.assertRaises(PipelineDegraded):
            load_brand_image("")
        with self.assertRaises(PipelineDegraded):
            load_brand_image("/nonexistent/logo.png")

    def test_not_an_image_degrades(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "logo.png")
            with open(path, "wb") as f:
                f.write(b"not a png")
            with self.assertRaises(PipelineDegraded):
                load_brand_image(path)


class TestReadPdf(unittest.TestCase):
    def test_garbage_rejected(self):
        with self.assertRaises(PdfReadError):
            read_pdf(b"definitely not a pdf")

    def test_encrypted_rejected(self):
        writer = PdfWriter()
        writer.add_blank_page(width=200, height=200)
        writer.encrypt("secret")
        buf = io.BytesIO()
        writer.write(buf)
        with self.assertRaises(PdfReadError):
            read_pdf(buf.getvalue())


class TestBuildPreview(unittest.TestCase):
    def test_page_sizes_preserved(self):
        out = build_preview(make_pdf(pages=2, width=300, height=500), brand=None, **PREVIEW_KW)
        page = PdfReader(io.BytesIO(out.content)).pages[0]
        self.assertEqual((float(page.mediabox.width), float(page.mediabox.height)), (300.0, 500.0))
        self.assertEqual((out.pages_total, out.pages_out), (2, 2))

    def test_cta_counts(self):
        out = build_preview(make_pdf(pages=8), brand=None, **PREVIEW_KW)
        self.assertEqual((out.pages_total, out.pages_out), (8, 6))
        text = PdfReader(io.BytesIO(out.content)).pages[5].extract_text().replace(" ", "")
        self.assertIn("8pages", text)
        self.assertIn("first5", text)

    def test_brand_adds_image_xobject(self):
        with tempfile.TemporaryDirectory() as tmp:
            brand = _brand(tmp)
        out = build_preview(make_pdf(pages=1), brand=brand, **PREVIEW_KW)
        self.assertEqual(out.degraded, [])
        resources = PdfReader(io.BytesIO(out.content)).pages[0]["/Resources"]
        self.assertIn("/XObject", resources)


class TestStampFull(unittest.TestCase):
    def test_caption_on_every_page(self):
        out = stamp_full(
            make_pdf(pages=3),
            caption="Downloaded by: bob@example.com",
            caption_opacity=0.6,
            brand=None,
            brand_opacity=0.2,
        )
        reader = PdfReader(io.BytesIO(out.content))
        self.assertEqual(len(reader.pages), 3)
        for page in reader.pages:
            self.assertIn("Downloadedby:bob@example.com", page.extract_text().replace(" ", ""))

    def test_caption_with_parentheses_survives(self):
        out = stamp_full(
            make_pdf(pages=1),
            caption="Downloaded by: (test) user",
            caption_opacity=0.6,
            brand=None,
            brand_opacity=0.2,
        )
        text = PdfReader(io.BytesIO(out.content)).pages[0].extract_text()
        self.assertIn("(test)", text)

    def test_brand_with_alpha_embeds_soft_mask(self):
        with tempfile.TemporaryDirectory() as tmp:
            brand = _brand(tmp)
        out = stamp_full(
            make_pdf(pages=2),
            caption="Downloaded by: bob@example.com",
            caption_opacity=0.6,
            brand=brand,
            brand_opacity=0.2,
        )
        for page in PdfReader(io.BytesIO(out.content)).pages:
            images = [x.get_object() for x in page["/Resources"]["/XObject"].values()]
            images = [img for img in images if img["/Subtype"] == "/Image"]
            self.assertEqual(len(images), 1)
            smask = images[0]["/SMask"].get_object()
            self.assertEqual(smask["/ColorSpace"], "/DeviceGray")
            self.assertEqual((smask["/Width"], smask["/Height"]), (brand.width, brand.height))


if __name__ == "__main__":
    unittest.main()
