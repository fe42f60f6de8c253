import unittest


class ExtractImagesTests(unittest.TestCase):
    def test_returns_empty_list_without_images(self):
        from jiralink.services.images import extract_images

        self.assertEqual(extract_images("Just some text"), [])
        self.assertEqual(extract_images(""), [])
        self.assertEqual(extract_images(None), [])

    def test_extracts_images_in_document_order_with_offsets(self):
        from jiralink.services.images import extract_images

        md = "![a](https://example.com/1.png) text ![b](https://example.com/2.jpg)"
        refs = extract_images(md)

        self.assertEqual([(r.alt, r.url) for r in refs], [
            ("a", "https://example.com/1.png"),
            ("b", "https://example.com/2.jpg"),
        ])
        for ref in refs:
            self.assertEqual(md[ref.start:ref.end], ref.raw)

    def test_keeps_duplicates(self):
        from jiralink.services.images import extract_images

        md = "![x](https://e.com/a.png)\n![x](https://e.com/a.png)\n![y](https://e.com/a.png)"
        refs = extract_images(md)

        self.assertEqual(len(refs), 3)
        self.assertEqual(len({r.url for r in refs}), 1)
        self.assertLess(refs[0].start, refs[1].start)

    def test_empty_alt_title_and_angle_brackets(self):
        from jiralink.services.images import extract_images

        refs = extract_images(
            '![](https://example.com/a.png) '
            '![alt](https://example.com/b.png "A title") '
            "![c](<https://example.com/c.png>)"
        )

        self.assertEqual(refs[0].alt, "")
        self.assertEqual(refs[0].url, "https://example.com/a.png")
        self.assertEqual(refs[1].url, "https://example.com/b.png")
        self.assertEqual(refs[2].url, "https://example.com/c.png")

    def test_images_inside_block_quotes_and_lists(self):
        from jiralink.services.images import extract_images

        md = "> Some quote\n>\n> ![bq](https://example.com/bq.png)\n\n- item ![li](https://example.com/li.png)\n"
        refs = extract_images(md)

        self.assertEqual([r.alt for r in refs], ["bq", "li"])

    def test_ignores_images_in_code(self):
        from jiralink.services.images import extract_images

        md = (
            "```\n![fenced](https://example.com/f.png)\n```\n"
            "inline `![span](https://example.com/s.png)` and ![real](https://example.com/r.png)"
        )
        refs = extract_images(md)

        self.assertEqual([r.alt for r in refs], ["real"])

    def test_plain_links_are_not_images(self):
        from jiralink.services.images import extract_images

        self.assertEqual(extract_images("[link](https://example.com/a.png)"), [])


class RewriteImagesTests(unittest.TestCase):
    def test_replaces_mapped_urls_with_filenames(self):
        from jiralink.services.images import rewrite_images

        md = "See ![screenshot](https://example.com/img.png) for details"
        out = rewrite_images(md, {"https://example.com/img.png": "img.png"})

        self.assertEqual(out, "See ![screenshot](img.png) for details")

    def test_leaves_unmapped_urls_unchanged(self):
        from jiralink.services.images import rewrite_images

        md = "![a](https://example.com/1.png) ![b](https://other.com/2.png)"
        out = rewrite_images(md, {"https://example.com/1.png": "1.png"})

        self.assertEqual(out, "![a](1.png) ![b](https://other.com/2.png)")

    def test_empty_mapping_is_noop(self):
        from jiralink.services.images import rewrite_images

        md = "> ![a](https://example.com/1.png 'title')\n\ntext"
        self.assertEqual(rewrite_images(md, {}), md)

    def test_repeated_references_are_all_rewritten_and_title_dropped(self):
        from jiralink.services.images import rewrite_images

        url = "https://example.com/a-much-longer-path/shot.png"
        md = f'![x]({url} "t") middle ![x]({url}) end ![y]({url})'
        out = rewrite_images(md, {url: "shot.png"})

        self.assertEqual(out, "![x](shot.png) middle ![x](shot.png) end ![y](shot.png)")
        self.assertNotIn(url, out)

    def test_does_not_touch_url_outside_image_syntax(self):
        from jiralink.services.images import rewrite_images

        url = "https://example.com/img.png"
        md = f"raw {url} and ![i]({url}) and [link]({url})"
        out = rewrite_images(md, {url: "img.png"})

        self.assertEqual(out, f"raw {url} and ![i](img.png) and [link]({url})")

    def test_apply_edits_runs_back_to_front(self):
        from jiralink.services.images import apply_edits

        text = "aaa bbb ccc"
        edits = [(0, 3, "X"), (8, 3, "a-longer-one")]

        self.assertEqual(apply_edits(text, edits), "X bbb a-longer-one")


class DedupeFilenamesTests(unittest.TestCase):
    def test_unique_filenames_pass_through(self):
        from jiralink.services.images import dedupe_filenames

        result = dedupe_filenames([
            ("https://a.com/1.png", "1.png"),
            ("https://b.com/2.png", "2.png"),
        ])

        self.assertEqual(result, {"https://a.com/1.png": "1.png", "https://b.com/2.png": "2.png"})

    def test_colliding_names_get_numbered_suffix_before_extension(self):
        from jiralink.services.images import dedupe_filenames

        result = dedupe_filenames([
            ("https://a.com/img.png", "img.png"),
            ("https://b.com/other.gif", "other.gif"),
            ("https://b.com/img.png", "img.png"),
            ("https://c.com/img.png", "img.png"),
        ])

        self.assertEqual(result["https://a.com/img.png"], "img-1.png")
        self.assertEqual(result["https://b.com/img.png"], "img-2.png")
        self.assertEqual(result["https://c.com/img.png"], "img-3.png")
        self.assertEqual(result["https://b.com/other.gif"], "other.gif")

    def test_names_without_extension_get_suffix_appended(self):
        from jiralink.services.images import dedupe_filenames

        result = dedupe_filenames([
            ("https://a.com/image", "image"),
            ("https://b.com/image", "image"),
        ])

        self.assertEqual(result, {"https://a.com/image": "image-1", "https://b.com/image": "image-2"})

    def test_suffix_goes_before_last_extension_only(self):
        from jiralink.services.images import dedupe_filenames

        result = dedupe_filenames([
            ("https://a.com/x.tar.gz", "x.tar.gz"),
            ("https://b.com/x.tar.gz", "x.tar.gz"),
        ])

        self.assertEqual(result["https://b.com/x.tar.gz"], "x.tar-2.gz")

    def test_suffix_already_taken_is_skipped(self):
        from jiralink.services.images import dedupe_filenames

        result = dedupe_filenames([
            ("https://a.com/1/img.png", "img.png"),
            ("https://a.com/2/img.png", "img.png"),
            ("https://a.com/3/img-1.png", "img-1.png"),
        ])

        self.assertEqual(result, {
            "https://a.com/1/img.png": "img-2.png",
            "https://a.com/2/img.png": "img-3.png",
            "https://a.com/3/img-1.png": "img-1.png",
        })
        self.assertEqual(len(set(result.values())), 3)

    def test_is_deterministic(self):
        from jiralink.services.images import dedupe_filenames

        entries = [(f"https://h{i}.com/a.png", "a.png") for i in range(5)]
        self.assertEqual(dedupe_filenames(entries), dedupe_filenames(list(entries)))


if __name__ == "__main__":
    unittest.main()
