import numpy as np
import pytest

from BlockMerger import (
    BlockMerger,
    BlockRemap,
    NoNeighborError,
    list_merge_policies,
    mergeBlocks_opt,
    mergeSmallBlocks,
    select_median_neighbor,
)
from FineGrid import FineGrid
from Partitioner import InvalidPartitionError, blockVolumes, compressPartition

METHODS = ["naive", "incremental"]


def star_grid():
    # Cell 1 touches cells 2, 3 and 4, which do not touch each other
    return FineGrid(neighbors=[[1, 2], [1, 3], [1, 4]], volumes=[1.0, 50.0, 30.0, 40.0])


def isolated_grid():
    # Cell 1 only has boundary faces
    return FineGrid(neighbors=[[1, 0], [0, 1], [2, 3], [0, 2], [3, 0]], volumes=[0.0, 10.0, 10.0])


@pytest.mark.parametrize("method", METHODS)
def test_small_pair_merges_into_large_block(line_grid, method):
    grid = line_grid([1.0, 1.0, 100.0])
    merger = BlockMerger(grid, [1, 2, 3], mergeBlocks_opt(method=method))
    assert np.isclose(merger.meanVol, 34.0)
    assert np.isclose(merger.minVol, 3.4)

    p, vols = merger.run()
    assert merger.history == [(1, 2), (2, 3)]
    assert merger.state == "Converged"
    assert p.tolist() == [1, 1, 1]
    assert np.allclose(vols, [0.0, 102.0])


@pytest.mark.parametrize("method", METHODS)
def test_isolated_block_fails(method):
    merger = BlockMerger(isolated_grid(), [1, 2, 3], mergeBlocks_opt(method=method))
    with pytest.raises(NoNeighborError) as excinfo:
        merger.run()
    assert excinfo.value.block == 1
    assert merger.state == "Failed"
    assert merger.history == []


@pytest.mark.parametrize("method", METHODS)
def test_large_blocks_are_left_alone(cart_model, method):
    p0 = cart_model.partitionUI([2, 2, 1])
    p, vols = mergeSmallBlocks(cart_model.FineGrid, p0, method=method)
    assert p.tolist() == p0.tolist()
    assert np.allclose(vols, [0.0, 4000.0, 4000.0, 4000.0, 4000.0])


def test_zero_mean_volume_is_invalid(line_grid):
    with pytest.raises(InvalidPartitionError):
        BlockMerger(line_grid([0.0, 0.0]), [1, 2])


def test_inconsistent_volume_table_is_invalid(line_grid):
    with pytest.raises(InvalidPartitionError):
        BlockMerger(line_grid([1.0, 1.0, 1.0]), [1, 1, 3], blockVols=[0.0, 2.0, 7.0, 1.0])


@pytest.mark.parametrize(
    "policy, target",
    [
        ("largest_neighbor", 2),
        ("smallest_neighbor", 3),
        ("median_neighbor", 4),
        ("median-neighbor", 4),
        (lambda nlist, nvols: len(nlist) - 1, 4),
    ],
)
@pytest.mark.parametrize("method", METHODS)
def test_merge_policy(policy, target, method):
    merger = BlockMerger(star_grid(), [1, 2, 3, 4], mergeBlocks_opt(policy=policy, method=method))
    merger.run()
    assert merger.history == [(1, target)]


def test_median_of_two_neighbors_is_the_larger(line_grid):
    grid = line_grid([50.0, 1.0, 30.0])
    merger = BlockMerger(grid, [1, 2, 3], mergeBlocks_opt(policy="median_neighbor"))
    merger.run()
    assert merger.history == [(2, 1)]


def test_median_selection_ranks():
    nlist = np.array([2, 5, 7, 9, 11])
    nvols = np.array([10.0, 50.0, 30.0, 40.0, 20.0])
    # Descending volumes: 5, 9, 7, 11, 2
    assert nlist[select_median_neighbor(nlist, nvols)] == 7
    assert nlist[select_median_neighbor(nlist[:4], nvols[:4])] == 9


def test_median_ties_go_to_lowest_block():
    assert select_median_neighbor(np.array([2, 5, 7]), np.array([10.0, 10.0, 10.0])) == 1
    assert select_median_neighbor(np.array([3, 4]), np.array([20.0, 20.0])) == 0


@pytest.mark.parametrize("policy", ["largest_neighbor", "smallest_neighbor"])
def test_neighbor_ties_go_to_lowest_block(line_grid, policy):
    merger = BlockMerger(line_grid([100.0, 1.0, 100.0]), [1, 2, 3], mergeBlocks_opt(policy=policy))
    merger.run()
    assert merger.history == [(2, 1)]


@pytest.mark.parametrize("method", METHODS)
def test_smallest_block_ties_go_to_lowest_block(line_grid, method):
    merger = BlockMerger(line_grid([1.0, 1.0, 100.0, 100.0]), [1, 2, 3, 4], mergeBlocks_opt(method=method))
    p, vols = merger.run()
    assert merger.history == [(1, 2), (2, 3)]
    assert p.tolist() == [1, 1, 1, 2]
    assert np.allclose(vols, [0.0, 102.0, 100.0])


@pytest.mark.parametrize("method", METHODS)
def test_given_volume_table_drives_merging(line_grid, method):
    # Cell volumes would merge block 1 first, the given table makes block 1 large
    grid = line_grid([1.0, 1.0, 100.0])
    merger = BlockMerger(grid, [1, 2, 3], mergeBlocks_opt(method=method), blockVols=[0.0, 50.0, 1.0, 100.0])
    p, vols = merger.run()
    assert merger.history == [(2, 3)]
    assert p.tolist() == [1, 2, 2]
    assert np.allclose(vols, [0.0, 50.0, 101.0])


@pytest.mark.parametrize("method", METHODS)
def test_neighbor_absorbed_earlier_is_followed(line_grid, method):
    # Block 3 still lists block 2, which was merged into block 1
    merger = BlockMerger(line_grid([100.0, 1.0, 2.0, 100.0]), [1, 2, 3, 4], mergeBlocks_opt(method=method))
    p, vols = merger.run()
    assert merger.history == [(2, 1), (3, 1)]
    assert p.tolist() == [1, 1, 1, 2]
    assert np.allclose(vols, [0.0, 103.0, 100.0])


def test_first_appearance_numbering_of_merged_partition(line_grid):
    merger = BlockMerger(line_grid([100.0, 100.0, 1.0]), [2, 1, 3])
    p, vols = merger.run()
    assert p.tolist() == [2, 1, 1]
    assert compressPartition(merger.p, order="first").tolist() == [1, 2, 2]


def test_block_numbers_with_gaps(line_grid):
    merger = BlockMerger(line_grid([1.0, 1.0, 100.0]), [4, 7, 9])
    p, vols = merger.run()
    assert merger.history == [(4, 7), (7, 9)]
    assert p.tolist() == [1, 1, 1]


def test_unknown_options(line_grid):
    grid = line_grid([1.0, 1.0])
    with pytest.raises(ValueError):
        BlockMerger(grid, [1, 2], mergeBlocks_opt(policy="random_neighbor"))
    with pytest.raises(ValueError):
        BlockMerger(grid, [1, 2], mergeBlocks_opt(method="parallel"))
    assert list_merge_policies() == ["largest_neighbor", "smallest_neighbor", "median_neighbor"]


def test_block_remap_follows_merge_chain():
    remap = BlockRemap(5)
    remap.merge(1, 2)
    remap.merge(2, 4)
    remap.merge(3, 4)
    assert remap.find(1) == 4
    assert remap.parent[1] == 4
    assert remap.resolve([1, 2, 3, 4, 5]).tolist() == [4, 4, 4, 4, 5]
    with pytest.raises(AssertionError):
        remap.merge(1, 5)


@pytest.mark.parametrize("policy", list_merge_policies())
def test_naive_and_incremental_agree(eroded_model, policy):
    grid, p0 = eroded_model.FineGrid, eroded_model.Partition
    naive = BlockMerger(grid, p0, mergeBlocks_opt(threshold=0.5, policy=policy, method="naive"))
    incremental = BlockMerger(grid, p0, mergeBlocks_opt(threshold=0.5, policy=policy, method="incremental"))
    p1, vols1 = naive.run()
    p2, vols2 = incremental.run()

    assert len(naive.history) > 0
    assert naive.history == incremental.history
    assert p1.tolist() == p2.tolist()
    assert np.allclose(vols1, vols2)


@pytest.mark.parametrize("method", METHODS)
def test_merge_invariants(eroded_model, method):
    grid, p0 = eroded_model.FineGrid, eroded_model.Partition
    total = grid.VOL.sum()
    seen = []

    def record(iteration, p, block, nlist):
        assert len(p) == grid.N
        assert p.min() > 0
        assert block in p
        assert block not in nlist
        seen.append((iteration, len(np.unique(p)), blockVolumes(p, grid.VOL).sum()))

    merger = BlockMerger(grid, p0, mergeBlocks_opt(threshold=0.5, method=method, callback=record))
    NumBlocks0 = merger.NumBlocks0
    p, vols = merger.run()

    # One callback per merge, one block less after every merge
    assert [s[0] for s in seen] == list(range(1, len(merger.history) + 1))
    assert [s[1] for s in seen] == list(range(NumBlocks0, NumBlocks0 - len(seen), -1))
    assert np.allclose([s[2] for s in seen], total)

    # Terminates within NumBlocks0-1 merges with every block above the threshold
    assert len(merger.history) <= NumBlocks0 - 1
    assert p.max() == NumBlocks0 - len(merger.history)
    assert sorted(set(p.tolist())) == list(range(1, p.max() + 1))
    assert np.isclose(merger.minVol, 0.5 * total / NumBlocks0)
    assert np.all(vols[1:] >= merger.minVol)
    assert np.allclose(vols, blockVolumes(p, grid.VOL))
    assert np.isclose(vols.sum(), total)


def test_merging_is_deterministic(eroded_model):
    grid, p0 = eroded_model.FineGrid, eroded_model.Partition
    runs = []
    for _ in range(2):
        merger = BlockMerger(grid, p0, mergeBlocks_opt(threshold=0.5))
        p, _ = merger.run()
        runs.append((merger.history, p.tolist()))
    assert runs[0] == runs[1]


def test_input_partition_is_not_modified(eroded_model):
    p0 = eroded_model.Partition.copy()
    mergeSmallBlocks(eroded_model.FineGrid, eroded_model.Partition, threshold=0.5)
    assert eroded_model.Partition.tolist() == p0.tolist()


def test_callback_gets_read_only_partition(line_grid):
    writable = []

    def try_write(iteration, p, block, nlist):
        try:
            p[0] = 99
            writable.append(True)
        except ValueError:
            writable.append(False)

    merger = BlockMerger(line_grid([1.0, 1.0, 100.0]), [1, 2, 3], mergeBlocks_opt(callback=try_write))
    p, _ = merger.run()
    assert writable == [False, False]
    assert p.tolist() == [1, 1, 1]


def test_step_by_step(line_grid):
    merger = BlockMerger(line_grid([1.0, 1.0, 100.0]), [1, 2, 3])
    assert merger.step() == "Running"
    assert merger.p.tolist() == [2, 2, 3]
    assert merger.NumBlocks == 2
    assert merger.step() == "Running"
    assert merger.step() == "Converged"
    assert merger.step() == "Converged"
    assert merger.iteration == 2
