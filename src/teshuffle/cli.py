"""
teshuffle CLI - Command Line Interface for TE enrichment analysis.

Usage:
    teshuffle <command> [options]
"""

import click

from teshuffle import __version__
from teshuffle.exceptions import ConfigurationError, TEShuffleError


@click.group()
@click.version_option(version=__version__, prog_name="teshuffle")
def main():
    """teshuffle - Enrichment of transposable elements in genomic features.

    TEs are shuffled on their chromosome (bedtools shuffle) and intersected
    with the features; observed overlaps per TE class, family, name and age
    are tested against the bootstrap runs. Use 'teshuffle <command> --help'
    for detailed usage of each command.
    """
    pass


# ============================================================================
# Enrichment Analysis
# ============================================================================

@main.command()
@click.option("-f", "--feat", "features", help="Features to test (ChIP-seq peaks, etc), BED format")
@click.option("-s", "--shuffle", help="TEs to shuffle: RepeatMasker .out or TE .bed")
@click.option("-r", "--range", "range_file", help="Genome range file (name <tab> length), or genome FASTA with -b")
@click.option("-b", "--build", is_flag=True, help="Build the range file from the FASTA given to -r")
@click.option("-e", "--excl", "exclude", help="Regions to exclude from shuffling (comma separated); the first one is the assembly gaps")
@click.option("-d", "--dogaps", is_flag=True, help="Compute assembly gaps from the genome FASTA given first in -e")
@click.option("-i", "--incl", "include", help="Regions to shuffle into (comma separated)")
@click.option("-o", "--overlap", "min_overlap", type=int, help="Minimal intersection length in nt [default: 10]")
@click.option("-n", "--nboot", type=int, help="Number of bootstraps; 0 runs the observed counts only [default: 100]")
@click.option("-a", "--add", "no_overlapping", is_flag=True, help="Do not allow overlaps between shuffled TEs (-noOverlapping)")
@click.option("-l", "--low", "nonte", type=click.Choice(["all", "no_low", "no_nonTE", "none"]), help="Non-TE sequences to keep [default: no_low]")
@click.option("-t", "--te", "te_filter", help="Subset of TEs, as type,name with type in name/class/family")
@click.option("-c", "--contain", is_flag=True, help="-t name is a substring match instead of exact")
@click.option("-g", "--group", "age_file", help="TE age file (Rname ... lineage age_category)")
@click.option("-w", "--where", "bedtools_dir", help="Directory of the bedtools binaries, if not in PATH")
@click.option("-p", "--workers", type=int, help="Number of parallel bootstrap workers [default: 1]")
@click.option("--seed", type=int, help="Base random seed for bedtools shuffle")
@click.option("--keep-temp", is_flag=True, help="Keep temporary run directories")
@click.option("--config", "config_file", type=click.Path(exists=True), help="YAML file with run options (flags override it)")
@click.option("--log-file", help="Also write the log to this file")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def run(config_file, log_file, verbose, **options):
    """Test TE enrichment in features by shuffling the TEs.

    Two-tailed permutation test and binomial test on the counts of overlaps,
    written to <features>.nonTE-<mode>.<nboot>.boot.stats.txt. Previous
    outputs are moved to *.previous.
    """
    from teshuffle.enrich.shuffle import run_shuffle_analysis
    from teshuffle.utils.config import ShuffleConfig
    from teshuffle.utils.logging_utils import setup_logger

    setup_logger("teshuffle", log_file=log_file, verbose=verbose)

    overrides = {
        key: (value if value is not False else None)
        for key, value in options.items()
    }
    try:
        base = ShuffleConfig.from_yaml(config_file) if config_file else ShuffleConfig()
        config = base.merged(overrides)
    except ValueError as e:
        raise click.UsageError(str(e))

    try:
        run_shuffle_analysis(config)
    except ConfigurationError as e:
        raise click.UsageError(str(e))
    except TEShuffleError as e:
        raise click.ClickException(str(e))


# ============================================================================
# Genome Preparation
# ============================================================================

@main.command("make-range")
@click.option("-i", "--input", "fasta", required=True, help="Genome FASTA (.gz supported)")
@click.option("-o", "--output", help="Output range file [default: <fasta>.range]")
def make_range(fasta, output):
    """Create the genome range file (name <tab> length) from a FASTA file."""
    from teshuffle.utils.genome import build_range
    from teshuffle.utils.logging_utils import setup_logger

    setup_logger("teshuffle")
    build_range(fasta, output)


@main.command("make-gaps")
@click.option("-i", "--input", "fasta", required=True, help="Genome FASTA (.gz supported)")
@click.option("-o", "--output", help="Output BED file [default: <fasta>.gaps.bed]")
@click.option("--min-length", default=50, help="N stretches longer than this are gaps")
def make_gaps(fasta, output, min_length):
    """Create the assembly gaps BED file (N stretches) from a FASTA file."""
    from teshuffle.utils.genome import build_gaps
    from teshuffle.utils.logging_utils import setup_logger

    setup_logger("teshuffle")
    build_gaps(fasta, output, min_length)


if __name__ == "__main__":
    main()
