"""RUV analysis of the hippocampus RNA-seq data.

Runs the FC and OLM datasets separately and combined, with upper-quartile
normalization only (k=0) and with RUVs, then compares the rankings with
the microarray ranking of the same samples by CAT curves.

Writes tab-delimited tables for the figure scripts (RLE, PCA, factor
loadings, DE tables, CAT curves) to output/.

Inputs (data/):
  fc_counts.txt, olm_counts.txt    gene x sample counts
  fc_samples.txt, olm_samples.txt  sample, condition, batch
  negative_controls.txt            curated negative control genes
  positive_controls.txt            gene, direction (UP/DOWN)
  microarray_pvalues.txt           gene, PValue (microarray DE, precomputed)

Usage: python run_analysis.py
Dependencies: numpy, pandas, scipy, statsmodels, patsy
"""
import os
import pandas as pd

import ruvpython as rp

DATA = os.path.join(os.path.dirname(__file__), 'data')
OUT = os.path.join(os.path.dirname(__file__), 'output')
os.makedirs(OUT, exist_ok=True)

K = 5
MAX_RANK = 500

# ── Datasets ──
datasets = {}
for name in ('fc', 'olm'):
    samples = rp.read_sample_metadata(f'{DATA}/{name}_samples.txt')
    datasets[name] = rp.read_counts(f'{DATA}/{name}_counts.txt', samples=samples)
datasets['combined'] = rp.combine_datasets(datasets['fc'], datasets['olm'])

negative = rp.read_control_genes(f'{DATA}/negative_controls.txt')
positive = rp.read_control_genes(f'{DATA}/positive_controls.txt',
                                 direction_column='direction')

# ── UQ and RUVs runs ──
configs = []
for name in datasets:
    batch = 'batch' if name == 'combined' else None
    configs.append(rp.make_analysis_config(f'{name}_uq', k=0, batch=batch,
                                           max_rank=MAX_RANK))
    configs.append(rp.make_analysis_config(f'{name}_ruvs', k=K, batch=batch,
                                           negative_controls=list(negative),
                                           max_rank=MAX_RANK))

results = {}
for config in configs:
    y = datasets[config['dataset'].rsplit('_', 1)[0]]
    res = rp.run_analysis(y, config, verbose=True)
    results[config['dataset']] = res

    tag = config['dataset']
    rp.write_table(rp.top_tags(res['lrt'], n=None), f'{OUT}/{tag}_de.txt')
    rp.write_table(res['rle'], f'{OUT}/{tag}_rle.txt')
    rp.write_table(res['pca']['scores'], f'{OUT}/{tag}_pca.txt')
    if res['ruv'] is not None:
        rp.write_table(res['ruv']['W'], f'{OUT}/{tag}_W.txt')

    rec = rp.positive_control_recovery(res['lrt'], positive, p_value=config['fdr'])
    print(f"{tag}: {rec['n_detected']}/{rec['n_controls']} positive controls detected, "
          f"{rec['n_concordant']} in the expected direction")

# ── CAT against microarray ──
array = pd.read_csv(f'{DATA}/microarray_pvalues.txt', sep='\t', index_col=0)['PValue']
array.index = array.index.astype(str)
curves = {}
for tag, res in results.items():
    shared = res['ranking'].index.intersection(array.index)
    r_max = min(MAX_RANK, len(shared))
    curves[tag] = rp.cat(res['ranking'][shared], array[shared], r_max=r_max)
rp.write_table(pd.DataFrame(curves), f'{OUT}/cat_vs_microarray.txt')

# ── CAT between regions ──
rp.write_table(rp.cat_table(results, [('fc_uq', 'olm_uq'), ('fc_ruvs', 'olm_ruvs')]),
               f'{OUT}/cat_fc_vs_olm.txt')
