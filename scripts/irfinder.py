#!/usr/bin/env python
"""Detect and quantify intron retention from RNA-seq reads.

Aligns FastQ reads with STAR, or takes an existing unsorted BAM, and streams
the alignments through the IRFinder analysis filter, optionally sorting the
resulting fragment BAM. Reference directories are built with the BuildRef
modes.

Usage:
  irfinder.py [-m FastQ] -r <reference dir> [-d <output dir>] <reads.fq> [<mates.fq>]
  irfinder.py -m BAM -r <reference dir> [-d <output dir>] <unsorted.bam>
  irfinder.py -m BuildRef -r <new reference dir> <Ensembl FTP URL>
"""
import sys

from irfinder.pipeline.main import main

if __name__ == "__main__":
    sys.exit(main())
