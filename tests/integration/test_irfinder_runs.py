"""Run complete IRFinder invocations against stand-in external programs.
"""
import glob
import os

import pytest

from irfinder.errors import PipelineError
from irfinder.pipeline import main, run_info
from irfinder.provenance import system

READS_1 = "@r1/1\nACGTACGT\n+\nIIIIIIII\n"
READS_2 = "@r1/2\nTTGCAAGC\n+\nIIIIIIII\n"


def _read(fname):
    with open(fname) as in_handle:
        return in_handle.read()


class TestAnalysisRuns(object):

    def test_bam_unsorted(self, parse, ref_dir, out_dir, tmp_path, sys_config, libexec,
                          small_host, make_gzip, recorded_args):
        """BAM mode runs on a small machine and falls back to unsorted output.
        """
        bam = make_gzip(tmp_path / "unsorted.bam", "alignments\n")
        config = main.run_main(parse("-m", "BAM", "-r", ref_dir, "-d", out_dir, bam),
                               sys_config, small_host)
        assert config.threads == small_host.threads
        assert config.sort_memory == system.auto_sort_memory(small_host.memory, "BAM")
        assert _read(os.path.join(out_dir, "unsorted.frag.bam")) == "fragments\n"
        assert _read(os.path.join(out_dir, "filter-input.txt")) == "alignments\n"
        assert not os.path.exists(os.path.join(out_dir, "Unsorted.bam"))
        assert recorded_args(libexec, "warnings") == [out_dir]
        stdout_log = _read(os.path.join(out_dir, "irfinder.stdout"))
        assert "Mode: BAM" in stdout_log
        assert "BAM: %s" % bam in stdout_log
        assert "No warnings for %s" % out_dir in stdout_log
        assert os.path.exists(os.path.join(out_dir, "irfinder.stderr"))

    def test_single_end_clipped_by_star(self, parse, ref_dir, out_dir, tmp_path, sys_config,
                                        libexec, big_host, recorded_args):
        reads = tmp_path / "reads.fq"
        reads.write_text(READS_1)
        config = main.run_main(parse("-r", ref_dir, "-d", out_dir, "-t", "3", reads),
                               sys_config, big_host)
        assert config.star == os.path.join(libexec, "STAR")
        star_args = recorded_args(libexec, "STAR")
        assert star_args[star_args.index("--runThreadN") + 1] == "3"
        assert star_args[star_args.index("--clip3pAdapterSeq") + 1] == run_info.DEFAULT_ADAPTER
        assert star_args[star_args.index("--readFilesIn") + 1] == str(reads)
        assert not os.path.exists(os.path.join(libexec, "trim.args"))
        assert _read(os.path.join(out_dir, "filter-input.txt")) == READS_1
        assert os.path.exists(os.path.join(out_dir, "Unsorted.bam"))
        assert os.path.exists(os.path.join(out_dir, "unsorted.frag.bam"))

    def test_paired_end_trimmed(self, parse, ref_dir, out_dir, tmp_path, sys_config, libexec,
                                big_host, make_gzip, recorded_args):
        r1 = make_gzip(tmp_path / "r1.fq.gz", READS_1)
        r2 = make_gzip(tmp_path / "r2.fq.gz", READS_2)
        main.run_main(parse("-r", ref_dir, "-d", out_dir, "-a", "AAAA,CCCC", r1, r2),
                      sys_config, big_host)
        trim_args = recorded_args(libexec, "trim")
        assert [x.startswith("/dev/fd/") for x in trim_args[:2]] == [True, True]
        assert [os.path.dirname(x) for x in trim_args[2:4]] == [out_dir, out_dir]
        assert [x.endswith(".fifo") for x in trim_args[2:4]] == [True, True]
        assert trim_args[4:] == ["AAAA", "CCCC"]
        star_args = recorded_args(libexec, "STAR")
        assert star_args[star_args.index("--readFilesIn") + 1:][:2] == trim_args[2:4]
        assert "--clip3pAdapterSeq" not in star_args
        assert _read(os.path.join(out_dir, "filter-input.txt")) == READS_1 + READS_2
        assert glob.glob(os.path.join(out_dir, "*.fifo")) == []

    def test_paired_end_aligner_failure(self, parse, ref_dir, out_dir, tmp_path, sys_config,
                                        libexec, big_host, make_gzip, make_script):
        make_script(os.path.join(libexec, "STAR"), """\
            #!/bin/sh
            if [ "$1" = "--version" ]; then echo "2.7.10a"; exit 0; fi
            echo "genome index not found" >&2
            exit 1
            """)
        r1 = make_gzip(tmp_path / "r1.fq.gz", READS_1)
        r2 = make_gzip(tmp_path / "r2.fq.gz", READS_2)
        with pytest.raises(PipelineError) as excinfo:
            main.run_main(parse("-r", ref_dir, "-d", out_dir, r1, r2), sys_config, big_host)
        assert excinfo.value.stage == "STAR"
        assert excinfo.value.returncode == 1
        assert excinfo.value.exit_code == 3
        assert glob.glob(os.path.join(out_dir, "*.fifo")) == []
        assert "genome index not found" in _read(os.path.join(out_dir, "irfinder.stderr"))

    def test_paired_end_trimmer_failure(self, parse, ref_dir, out_dir, tmp_path, sys_config,
                                        libexec, big_host, make_gzip, make_script):
        """A trimmer that dies before opening its output pipes does not stall STAR.
        """
        make_script(os.path.join(libexec, "trim"), "#!/bin/sh\necho 'bad input' >&2\nexit 1\n")
        r1 = make_gzip(tmp_path / "r1.fq.gz", READS_1)
        r2 = make_gzip(tmp_path / "r2.fq.gz", READS_2)
        with pytest.raises(PipelineError) as excinfo:
            main.run_main(parse("-r", ref_dir, "-d", out_dir, r1, r2), sys_config, big_host)
        assert excinfo.value.stage == "trim"
        assert excinfo.value.returncode == 1
        assert glob.glob(os.path.join(out_dir, "*.fifo")) == []
        assert "bad input" in _read(os.path.join(out_dir, "irfinder.stderr"))

    def test_bam_sorted(self, parse, ref_dir, out_dir, tmp_path, sys_config, small_host,
                        make_gzip, make_script):
        novo_dir = tmp_path / "novocraft"
        novo_dir.mkdir()
        novosort = make_script(str(novo_dir / "novosort"), """\
            #!/bin/sh
            echo "$@" > "$(dirname "$0")/novosort.args"
            cat > "$9"
            echo "sorting done" >&2
            """)
        (novo_dir / "novoalign.lic").write_text("Licensed to: lab\nExpiry date: 2099-12-31\n")
        sys_config["resources"]["novosort"] = {"cmd": novosort}
        bam = make_gzip(tmp_path / "unsorted.bam", "alignments\n")
        main.run_main(parse("-m", "BAM", "-r", ref_dir, "-d", out_dir, bam),
                      sys_config, small_host)
        assert _read(os.path.join(out_dir, "sorted.frag.bam")) == "fragments\n"
        assert "sorting done" in _read(os.path.join(out_dir, "sorted.frag.log"))
        assert not os.path.exists(os.path.join(out_dir, "unsorted.frag.bam"))
        assert glob.glob(os.path.join(out_dir, ".irfinder-sort-*")) == []

    def test_unsorted_flag_skips_novosort(self, parse, ref_dir, out_dir, tmp_path, sys_config,
                                          small_host, make_gzip):
        sys_config["resources"]["novosort"] = {"cmd": "/bin/false"}
        bam = make_gzip(tmp_path / "unsorted.bam", "alignments\n")
        main.run_main(parse("-m", "BAM", "-u", "-r", ref_dir, "-d", out_dir, bam),
                      sys_config, small_host)
        assert os.path.exists(os.path.join(out_dir, "unsorted.frag.bam"))


class TestBuildRuns(object):

    def test_build_ref(self, parse, tmp_path, out_dir, sys_config, libexec, big_host,
                       recorded_args):
        ref = str(tmp_path / "NEWREF")
        url = "ftp://ftp.ensembl.org/pub/release-75/"
        main.run_main(parse("-m", "BuildRef", "-r", ref, "-d", out_dir, url), sys_config,
                      big_host)
        assert recorded_args(libexec, "irfinder-build-ref")[:5] == \
            ["BuildRef", str(big_host.threads), os.path.join(libexec, "STAR"), url, ref]
        assert "building" in _read(os.path.join(out_dir, "irfinder.stdout"))
        assert not os.path.exists(os.path.join(libexec, "warnings.args"))


class TestCommandLine(object):

    def test_existing_reference_not_overwritten(self, ref_dir, out_dir, capsys):
        before = sorted(os.listdir(ref_dir))
        code = main.main(["-m", "BuildRef", "-r", ref_dir, "-d", out_dir,
                          "ftp://ftp.ensembl.org/pub/release-75/"])
        assert code == 1
        assert sorted(os.listdir(ref_dir)) == before
        err = capsys.readouterr().err
        assert err.startswith("ERROR: ")
        assert "usage:" in err
        assert not os.path.exists(out_dir)

    def test_small_machine_exit_status(self, ref_dir, out_dir, tmp_path, libexec, small_host,
                                       monkeypatch, mocker, capsys):
        config_file = tmp_path / "irfinder_system.yaml"
        config_file.write_text("libexec: %s\n" % libexec)
        monkeypatch.setenv("IRFINDER_SYSTEM_CONFIG", str(config_file))
        mocker.patch("irfinder.pipeline.main.system.machine_info", return_value=small_host)
        reads = tmp_path / "reads.fq"
        reads.write_text(READS_1)
        code = main.main(["-r", ref_dir, "-d", out_dir, str(reads)])
        assert code == 2
        assert "32000" in capsys.readouterr().err

    def test_missing_system_config(self, ref_dir, out_dir, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("IRFINDER_SYSTEM_CONFIG", str(tmp_path / "missing.yaml"))
        reads = tmp_path / "reads.fq"
        reads.write_text(READS_1)
        assert main.main(["-r", ref_dir, "-d", out_dir, str(reads)]) == 2

    def test_pipeline_failure_exit_status(self, ref_dir, out_dir, tmp_path, libexec, small_host,
                                          make_gzip, make_script, monkeypatch, mocker, capsys):
        make_script(os.path.join(libexec, "irfinder"), "#!/bin/sh\ncat > /dev/null\nexit 2\n")
        config_file = tmp_path / "irfinder_system.yaml"
        config_file.write_text("libexec: %s\nresources:\n  novosort: %s\n"
                               % (libexec, tmp_path / "missing" / "novosort"))
        monkeypatch.setenv("IRFINDER_SYSTEM_CONFIG", str(config_file))
        mocker.patch("irfinder.pipeline.main.system.machine_info", return_value=small_host)
        bam = make_gzip(tmp_path / "unsorted.bam", "alignments\n")
        code = main.main(["-m", "BAM", "-r", ref_dir, "-d", out_dir, bam])
        assert code == 3
        assert "irfinder exited with status 2" in capsys.readouterr().err
