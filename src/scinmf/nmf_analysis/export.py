import os
import pickle
import logging

logger = logging.getLogger(__name__)


class PickleExporter:
    """Writes the W/H matrices of one sample to a pickle file per sample"""

    def __init__(self, dir_output, project='NMF', variable_features_n=7000):
        self.dir_output = dir_output
        self.project = project
        self.variable_features_n = variable_features_n

    def path_for(self, sample, k_range):
        """Output file for a sample, e.g. NMF_P1_hvg7000_k3to8.pkl"""
        k_range = list(k_range)
        filename = (
            f"{self.project}_{sample}_hvg{self.variable_features_n}"
            f"_k{k_range[0]}to{k_range[-1]}.pkl"
        )
        return os.path.join(self.dir_output, filename)

    def __call__(self, sample, result, k_range):
        os.makedirs(self.dir_output, exist_ok=True)
        path = self.path_for(sample, k_range)
        with open(path, 'wb') as f:
            pickle.dump(result, f)
        logger.info(f"Saved NMF result of sample {sample} to {path}")
        return path


def load_nmf_result(path):
    """Read a result written by PickleExporter"""
    with open(path, 'rb') as f:
        return pickle.load(f)
