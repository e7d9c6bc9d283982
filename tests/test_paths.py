import unittest

from mantablob.paths import (
    container_of,
    directory_path,
    join,
    leaf_of,
    private_root,
    public_root,
)


class TestPaths(unittest.TestCase):
    def test_container_of(self) -> None:
        self.assertEqual(container_of("/acct/stor/dir/file.bin"), "/acct/stor/dir/")
        self.assertEqual(container_of("/acct/stor/dir/"), "/acct/stor/dir/")
        self.assertEqual(container_of("/file"), "/")
        self.assertEqual(container_of("file.bin"), "")
        self.assertEqual(container_of(""), "")

    def test_leaf_of(self) -> None:
        self.assertEqual(leaf_of("/acct/stor/dir/file.bin"), "file.bin")
        self.assertEqual(leaf_of("/acct/stor/dir/"), "")
        self.assertEqual(leaf_of("file.bin"), "file.bin")
        self.assertEqual(leaf_of(""), "")

    def test_container_and_leaf_rebuild_path(self) -> None:
        for path in ["/a/stor/x/y", "plain", "/", "/a/public/"]:
            self.assertEqual(container_of(path) + leaf_of(path), path)

    def test_roots(self) -> None:
        self.assertEqual(private_root("acct"), "/acct/stor")
        self.assertEqual(public_root("acct"), "/acct/public")

    def test_directory_path_ignores_trailing_separator(self) -> None:
        self.assertEqual(directory_path("/acct/stor/dir/"), "/acct/stor/dir")
        self.assertEqual(directory_path("/acct/stor/dir"), "/acct/stor/dir")
        self.assertEqual(directory_path("/"), "/")

    def test_join(self) -> None:
        self.assertEqual(join("/acct/stor/dir/", "a.txt"), "/acct/stor/dir/a.txt")
        self.assertEqual(join("/acct/stor/dir", "a.txt"), "/acct/stor/dir/a.txt")
        self.assertEqual(join(None, "a.txt"), "a.txt")
        self.assertEqual(join("", "a.txt"), "a.txt")


if __name__ == "__main__":
    unittest.main()
