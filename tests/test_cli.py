from movie_projector.cli import main


def test_build(tmp_path, player_dir):
    movie = tmp_path / "movie.swf"
    movie.write_bytes(b"\x01\x02\x03")
    out = tmp_path / "out"

    rc = main(["build", "--player", str(player_dir), "--movie", str(movie), "-o", str(out), "-q", "app"])

    assert rc == 0
    assert len((out / "app").read_bytes()) == 29


def test_build_custom_layout(tmp_path, player_dir):
    movie = tmp_path / "movie.swf"
    movie.write_bytes(b"\x01\x02\x03")
    out = tmp_path / "out"

    rc = main(
        ["build", "--player", str(player_dir), "--movie", str(movie), "--layout", "sd", "-o", str(out), "-q", "app"]
    )

    assert rc == 0
    assert (out / "app").read_bytes() == b"0123456789" + b"\x03\x00\x00\x00" + b"\x01\x02\x03"


def test_build_unsupported_player(tmp_path):
    player = tmp_path / "player.rar"
    player.write_bytes(b"")

    rc = main(["build", "--player", str(player), "-o", str(tmp_path / "out"), "-qq", "app"])

    assert rc == 1


def test_build_bad_layout(tmp_path, player_dir):
    rc = main(["build", "--player", str(player_dir), "--layout", "dz", "-o", str(tmp_path / "out"), "-qq", "app"])

    assert rc == 1
