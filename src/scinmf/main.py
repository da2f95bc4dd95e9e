"""
sciNMF Main Script
Runs the per-sample NMF or the meta-program Cox regression from the command line
"""

import os
import argparse
import logging

from scinmf.config import CONFIG, NORMALIZATION_METHODS, SCORE_METHODS, NMF_LOSSES, NMF_SOLVERS
from scinmf.utils import (
    setup_logging,
    load_expression_matrix,
    load_clinical_table,
    load_gene_signatures,
    save_gene_signatures,
    save_results,
    save_plot
)

logger = logging.getLogger('scinmf.main')

NMF = CONFIG['nmf']
COXPH = CONFIG['coxph']
PLOT = CONFIG['plot']


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Single-cell NMF programs and meta-program survival analysis')
    parser.add_argument('--log-level', type=str, default=CONFIG['logging']['level'],
                        help='Logging level (default: INFO)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # NMF
    nmf = subparsers.add_parser('nmf', help='Run NMF for each sample of an h5ad file')
    nmf.add_argument('input', help='h5ad file with raw counts')
    nmf.add_argument('--group-by', required=True,
                     help='obs column used for grouping cells, e.g. the patient')
    nmf.add_argument('--output-dir', required=True, help='Directory for the results')
    nmf.add_argument('--k-min', type=int, default=min(NMF['k_range']), help='Smallest number of programs')
    nmf.add_argument('--k-max', type=int, default=max(NMF['k_range']), help='Largest number of programs')
    nmf.add_argument('--samples', nargs='+', default=None, help='Samples to analyze (default: all)')
    nmf.add_argument('--project', default=NMF['project'], help='Prefix for programs and output files')
    nmf.add_argument('--normalization-method', default=NMF['normalization_method'],
                     choices=NORMALIZATION_METHODS, help='Normalization of each sample')
    nmf.add_argument('--min-cell', type=int, default=NMF['min_cell'],
                     help='Minimum number of cells of a sample')
    nmf.add_argument('--variable-features-n', type=int, default=NMF['variable_features_n'],
                     help='Number of highly variable genes per sample')
    nmf.add_argument('--do-scale', action='store_true', help='Scale genes to unit variance')
    nmf.add_argument('--no-center', action='store_true', help='Do not center genes')
    nmf.add_argument('--n-jobs', type=int, default=NMF['n_jobs'], help='Number of parallel workers')
    nmf.add_argument('--seed', type=int, default=NMF['seed'], help='Random seed')
    nmf.add_argument('--keep-mt', action='store_true', help='Keep MT- genes')
    nmf.add_argument('--keep-rp', action='store_true', help='Keep RPS/RPL genes')
    nmf.add_argument('--keep-hsp', action='store_true', help='Keep HSP genes')
    nmf.add_argument('--loss', default=NMF['loss'], choices=list(NMF_LOSSES), help='NMF loss')
    nmf.add_argument('--max-iter', type=int, default=NMF['max_iter'], help='Maximum NMF iterations')
    nmf.add_argument('--method', default=NMF['method'], choices=list(NMF_SOLVERS), help='NMF algorithm')
    nmf.add_argument('--layer', default=None, help='Layer with raw counts (default: X)')
    nmf.add_argument('--n-program-genes', type=int, default=NMF['n_program_genes'],
                     help='Number of top genes written per program')

    # Cox regression
    cox = subparsers.add_parser('coxph', help='Univariate Cox regression of meta-program scores')
    cox.add_argument('expression', help='CSV/TSV expression matrix, genes x samples')
    cox.add_argument('clinical', help='CSV clinical table, first column is the sample id')
    cox.add_argument('gene_sets', help='GMT file or > separated gene list file')
    cox.add_argument('--output-dir', required=True, help='Directory for the results')
    cox.add_argument('--prefix', default='MetaProgram', help='Prefix of the output files')
    cox.add_argument('--time', default=COXPH['time'], help='Survival time column')
    cox.add_argument('--event', default=COXPH['event'], help='Event status column (0/1)')
    cox.add_argument('--group-by', nargs='*', default=None, help='Columns used to split samples')
    cox.add_argument('--min-sample', type=int, default=COXPH['min_sample'],
                     help='Minimum number of samples of a group')
    cox.add_argument('--score-method', default=COXPH['score_method'], choices=SCORE_METHODS,
                     help='Gene set scoring method')
    cox.add_argument('--kcdf', default=COXPH['kcdf'], help='Kernel for GSVA')
    cox.add_argument('--show-ns', action='store_true', help='Show ns for non significant results')
    cox.add_argument('--xlab', default=PLOT['xlab'])
    cox.add_argument('--ylab', default=PLOT['ylab'])
    cox.add_argument('--title', default=PLOT['title'])
    cox.add_argument('--color-asterisks', default=PLOT['color_asterisks'])
    cox.add_argument('--table-only', action='store_true', help='Only write the result table')

    return parser.parse_args(argv)


def run_nmf_command(args):
    """Run per-sample NMF and write the results of every sample"""
    import scanpy as sc
    from scinmf.nmf_analysis import run_nmf, merge_program_genes, program_loadings

    adata = sc.read_h5ad(args.input)
    logger.info(f"Loaded {adata.n_obs} cells and {adata.n_vars} genes from {args.input}")

    results = run_nmf(
        adata,
        group_by=args.group_by,
        dir_output=args.output_dir,
        k_range=range(args.k_min, args.k_max + 1),
        samples=args.samples,
        project=args.project,
        normalization_method=args.normalization_method,
        min_cell=args.min_cell,
        variable_features_n=args.variable_features_n,
        do_scale=args.do_scale,
        do_center=not args.no_center,
        n_jobs=args.n_jobs,
        seed=args.seed,
        rm_mt=not args.keep_mt,
        rm_rp=not args.keep_rp,
        rm_hsp=not args.keep_hsp,
        loss=args.loss,
        max_iter=args.max_iter,
        method=args.method,
        layer=args.layer
    )

    programs = merge_program_genes(results, n_genes=args.n_program_genes)
    save_gene_signatures(programs, os.path.join(args.output_dir, f"{args.project}_programs.gmt"))
    save_results(program_loadings(results), args.output_dir, f"{args.project}_W.csv")
    return results


def run_coxph_command(args):
    """Run the meta-program Cox regression and write table and plot"""
    from scinmf.survival_analysis import mp_coxph, plot_mp_coxph

    mat_exp = load_expression_matrix(args.expression)
    cli = load_clinical_table(args.clinical)
    gene_list = load_gene_signatures(args.gene_sets)

    df = mp_coxph(
        mat_exp, cli, gene_list,
        time=args.time,
        event=args.event,
        group_by=args.group_by,
        min_sample=args.min_sample,
        return_df=True,
        show_ns=args.show_ns,
        score_method=args.score_method,
        kcdf=args.kcdf
    )
    save_results(df, args.output_dir, f"{args.prefix}_coxph.csv", index=False)

    if not args.table_only:
        fig = plot_mp_coxph(
            df, xlab=args.xlab, ylab=args.ylab, title=args.title,
            color_asterisks=args.color_asterisks
        )
        save_plot(fig, f"{args.prefix}_coxph", args.output_dir)
    return df


def main(argv=None):
    args = parse_args(argv)
    os.makedirs(args.output_dir, exist_ok=True)
    setup_logging(os.path.join(args.output_dir, 'scinmf.log'), level=args.log_level)

    logger.info(f"Running sciNMF {args.command}")
    if args.command == 'nmf':
        run_nmf_command(args)
    else:
        run_coxph_command(args)
    logger.info("All Done!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
