from __future__ import annotations

import pytest

from bootc_provision.lib.kargs import INITRD_ARG_PREFIX, Cmdline, Parameter, split_params


def test_split_respects_quotes() -> None:
    assert split_params('  foo=bar  baz="a b c"\tquiet ') == ["foo=bar", 'baz="a b c"', "quiet"]


def test_split_only_on_ascii_whitespace() -> None:
    assert split_params("a\x0bb\x0cc\r\nd") == ["a", "b", "c", "d"]
    assert split_params("title=Fedora\u00a0Linux quiet") == ["title=Fedora\u00a0Linux", "quiet"]
    assert split_params("x=\u2003 y") == ["x=\u2003", "y"]


def test_parameter_switch_and_value() -> None:
    sw = Parameter.parse("quiet")
    assert sw.key == "quiet"
    assert sw.value is None

    kv = Parameter.parse('console="ttyS0,115200n8"')
    assert kv.key == "console"
    assert kv.value == "ttyS0,115200n8"


def test_only_outer_quotes_stripped() -> None:
    p = Parameter.parse('foo="""bar"""')
    assert p.value == '""bar""'
    assert Parameter.parse("foo=").value == ""


def test_keys_treat_dash_and_underscore_alike() -> None:
    cmdline = Cmdline("rd.break some-flag=1 other_flag=2")
    assert cmdline.value_of("some_flag") == "1"
    assert cmdline.value_of("other-flag") == "2"
    assert Parameter.parse("a-b=1") == Parameter.parse("a_b=1")
    assert Parameter.parse("foo") != Parameter.parse("foobar")


def test_find_and_require() -> None:
    cmdline = Cmdline("root=UUID=abc rw rootflags=ro composefs=deadbeef")
    assert cmdline.value_of("root") == "UUID=abc"
    assert cmdline.find("rw").value is None
    assert cmdline.find("missing") is None
    assert cmdline.require_value_of("composefs") == "deadbeef"
    with pytest.raises(KeyError, match="missing"):
        cmdline.require_value_of("missing")


def test_find_all_starting_with() -> None:
    cmdline = Cmdline("rd.luks=0 quiet rd.break=pre-mount")
    found = [p.key for p in cmdline.find_all_starting_with(INITRD_ARG_PREFIX)]
    assert found == ["rd.luks", "rd.break"]


def test_prepend_drops_duplicates() -> None:
    cmdline = Cmdline("root=UUID=abc selinux=1 rw")
    out = cmdline.prepend(["console=tty0", "selinux=1", "audit=0"])
    assert str(out) == "console=tty0 selinux=1 audit=0 root=UUID=abc rw"
    # Re-applying is stable.
    assert str(out.prepend(["console=tty0", "selinux=1", "audit=0"])) == str(out)


def test_from_proc(tmp_path) -> None:
    f = tmp_path / "cmdline"
    f.write_text("BOOT_IMAGE=/vmlinuz quiet\n")
    cmdline = Cmdline.from_proc(f)
    assert len(cmdline) == 2
    assert cmdline.value_of("BOOT_IMAGE") == "/vmlinuz"
