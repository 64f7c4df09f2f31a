"""
Main script to run the critical radius simulations:
1. Distribution of the critical radius for a fixed number of nodes (uniform placement)
2. Critical radius versus number of nodes (uniform and hotspot placement)
"""

import logging

import numpy as np
import matplotlib.pyplot as plt

from adhoc_network_simulator import AdHocNetworkSimulator
from density_functions import gaussian_hotspot_density, uniform_density


NUM_TRIALS = 1000
NUM_NODES = 100
NODE_COUNTS = [25, 50, 100, 200, 400]
NUM_TRIALS_PER_SIZE = 200
TOLERANCE = 0.05
SEED = 42
WORKERS = 4


def plot_cdf(results, xlabel, ylabel, title, save_filename=None, xlim=None):
    """
    Empirical CDF of every sample in `results` ({label: samples}) on one figure.
    """
    fig = plt.figure(figsize=(10, 6))

    for label, data in results.items():
        sorted_data = np.sort(data)
        p = np.linspace(0, 1, len(sorted_data), endpoint=False)
        plt.plot(sorted_data, p, linewidth=2, label=label)

    plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    plt.title(title)
    if xlim is not None:
        plt.xlim(xlim)
    plt.grid(True, alpha=0.3)
    plt.legend()
    plt.tight_layout()

    if save_filename:
        plt.savefig(save_filename, dpi=300)
    plt.close(fig)


def print_summary(label, samples):
    stats = AdHocNetworkSimulator.summarize(samples)
    print(f"\n{label}:")
    print(f"  Mean critical radius: {stats['mean']:.3f}")
    print(f"  Std deviation: {stats['std']:.3f}")
    print(f"  Median: {stats['median']:.3f}")
    print(f"  5th / 95th percentile: {stats['p5']:.3f} / {stats['p95']:.3f}")
    return stats


def question_1():
    """
    Question 1: Distribution of the critical radius for NUM_NODES uniformly placed nodes
    """
    print("\n" + "="*70)
    print(f"QUESTION 1: Critical radius distribution (n = {NUM_NODES})")
    print("="*70)

    sim = AdHocNetworkSimulator(density_fn=uniform_density, z_max=1.0, tolerance=TOLERANCE, seed=SEED)
    samples = sim.run_monte_carlo(NUM_TRIALS, NUM_NODES, workers=WORKERS)
    print_summary(f"Uniform placement, {NUM_TRIALS} trials", samples)

    # Histogram
    fig = plt.figure(figsize=(10, 6))
    plt.hist(samples, bins=40, density=True, alpha=0.7, edgecolor="black")
    plt.axvline(np.mean(samples), color="red", linestyle="--", label="Mean")
    plt.xlabel("Critical radius")
    plt.ylabel("Density")
    plt.title(f"Critical Radius Histogram (n = {NUM_NODES}, uniform)")
    plt.grid(True, alpha=0.3)
    plt.legend()
    plt.tight_layout()
    plt.savefig("question1_radius_histogram.png", dpi=300)
    plt.close(fig)

    plot_cdf(
        {f"n = {NUM_NODES}": samples},
        xlabel="Critical radius",
        ylabel="CDF",
        title="CDF of the Critical Radius (Uniform Placement)",
        save_filename="question1_radius_cdf.png"
    )

    return samples


def question_2():
    """
    Question 2: Critical radius as a function of the number of nodes, for uniform and
    hotspot node placement
    """
    print("\n" + "="*70)
    print("QUESTION 2: Critical radius versus number of nodes")
    print("="*70)

    densities = {
        "Uniform": (uniform_density, 1.0),
        "Hotspot": (gaussian_hotspot_density(center=(50.0, 50.0), sigma=20.0, floor=0.05), None),
    }

    results = {}
    for name, (density_fn, z_max) in densities.items():
        print(f"\n--- {name} placement ---")
        sim = AdHocNetworkSimulator(density_fn=density_fn, z_max=z_max, tolerance=TOLERANCE, seed=SEED)
        by_size = sim.run_over_sizes(NODE_COUNTS, NUM_TRIALS_PER_SIZE, workers=WORKERS)
        for n, samples in by_size.items():
            print_summary(f"{name}, n = {n}", samples)
        results[name] = by_size

        plot_cdf(
            {f"n = {n}": samples for n, samples in by_size.items()},
            xlabel="Critical radius",
            ylabel="CDF",
            title=f"CDF of the Critical Radius for Different Network Sizes ({name})",
            save_filename=f"question2_radius_cdf_{name.lower()}.png"
        )

    # Mean critical radius versus n
    fig = plt.figure(figsize=(10, 6))
    for name, by_size in results.items():
        sizes = np.array(list(by_size.keys()))
        means = np.array([np.mean(s) for s in by_size.values()])
        stds = np.array([np.std(s) for s in by_size.values()])
        plt.errorbar(sizes, means, yerr=stds, marker="o", capsize=4, linewidth=2, label=name)

    plt.xscale("log")
    plt.xlabel("Number of nodes")
    plt.ylabel("Critical radius")
    plt.title("Mean Critical Radius versus Number of Nodes")
    plt.grid(True, alpha=0.3)
    plt.legend()
    plt.tight_layout()
    plt.savefig("question2_radius_vs_n.png", dpi=300)
    plt.close(fig)

    return results


def main():
    """
    Main function to run all simulations
    """
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    radius_q1 = question_1()
    radius_q2 = question_2()

    print("\nALL SIMULATIONS COMPLETED SUCCESSFULLY")
    print("\nGenerated files:")
    print("  - question1_radius_histogram.png")
    print("  - question1_radius_cdf.png")
    print("  - question2_radius_cdf_uniform.png")
    print("  - question2_radius_cdf_hotspot.png")
    print("  - question2_radius_vs_n.png")

    return radius_q1, radius_q2


if __name__ == "__main__":
    main()
