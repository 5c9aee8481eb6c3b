#########################################################################
#       (C) 2017-2018 Department of Petroleum Engineering,              #
#       Univeristy of Louisiana at Lafayette, Lafayette, US.            #
#                                                                       #
# This code is released under the terms of the BSD license, and thus    #
# free for commercial and research use. Feel free to use the code into  #
# your own project with a PROPER REFERENCE.                             #
#                                                                       #
# PyGRDECL Code                                                         #
# Author: Bin Wang                                                      #
# Email: binwang.0213@gmail.com                                         #
#########################################################################

import numpy as np

from Partitioner import *
from utils import *

#############################################
#
#  Merging of small coarse blocks
#
#############################################

MergePolicies=['largest_neighbor','smallest_neighbor','median_neighbor']
MergeMethods=['naive','incremental']


class NoNeighborError(PartitionError):
    """The smallest block has no neighbor to be merged into"""
    def __init__(self,block):
        self.block=block
        super().__init__('Block %d has no neighboring block to merge with'%(block))


def list_merge_policies():
    return list(MergePolicies)

def mergeBlocks_opt(threshold=0.1,policy='largest_neighbor',method='incremental',verbose=False,callback=None):
    """Options of the small block merging

    Arguments
    ---------
    threshold -- blocks smaller than threshold*(mean block volume) are merged
    policy    -- neighbor receiving the small block, one of list_merge_policies()
                 or a function f(nlist,nvols) returning an index into nlist
    method    -- 'naive': regenerate block volumes and neighbors every iteration
                 'incremental': update running block volumes and neighbor lists
    verbose   -- print every merge
    callback  -- f(iteration,p,block,nlist) called before each merge with a
                 read-only view of the partition
    """
    return {'threshold':threshold,'policy':policy,'method':method,
            'verbose':verbose,'callback':callback}

# Neighbor selection, nlist is sorted ascending so ties go to the lowest block number
def select_largest_neighbor(nlist,nvols):
    return int(np.argmax(nvols))

def select_smallest_neighbor(nlist,nvols):
    return int(np.argmin(nvols))

def select_median_neighbor(nlist,nvols):
    #Sort by volume (descending) and take the one in the middle
    ind=np.lexsort((nlist,-np.asarray(nvols,dtype=float)))
    return int(ind[round_half_up(len(ind)/2)-1])


class BlockRemap:
    def __init__(self,nblocks):
        """Map from merged block numbers to the block that absorbed them

        Union-find with path compression. Block b is live when find(b)==b.
        """
        self.parent=np.arange(nblocks+1)

    def find(self,block):
        root=block
        while self.parent[root]!=root:
            root=self.parent[root]
        while block!=root:
            nxt=self.parent[block]
            self.parent[block]=root
            block=nxt
        return int(root)

    def merge(self,source,target):
        assert self.find(source)==source and self.find(target)==target and source!=target, \
            '[Error] Can only merge two different live blocks (%d->%d)!'%(source,target)
        self.parent[source]=target

    def resolve(self,blocks):
        return np.array([self.find(b) for b in blocks],dtype=int)


class BlockMerger:
    def __init__(self,grid,p,opt=None,blockVols=None):
        """Merge small coarse blocks into their neighbors

        The block with the smallest volume is merged into one of its
        neighbors until all blocks are larger than threshold*meanVol.
        The mean block volume is computed once, from the input partition.

        Arguments
        ---------
        grid      -- FineGrid, supplies neighbors and VOL
        p         -- initial partition vector (copied, gaps allowed)
        opt       -- option dict from mergeBlocks_opt()
        blockVols -- optional precomputed block volume table, slot 0 unused

        State
        -----
        state   -- 'Running', 'Converged' or 'Failed'
        history -- list of merges (block,target)
        """
        if(opt is None):
            opt=mergeBlocks_opt()
        self.grid=grid
        self.threshold=opt['threshold']
        self.policy=opt['policy']
        self.method=opt['method']
        self.verbose=opt['verbose']
        self.callback=opt['callback']

        if(self.method not in MergeMethods):
            raise ValueError("Unknown merge method [%s], use one of %s"%(self.method,MergeMethods))
        self.selector=self.get_selector(self.policy)

        self.p=checkPartition(grid,p,blockVols).copy()
        self.nblocks=int(self.p.max())
        if(blockVols is None):
            self.blockVols=blockVolumes(self.p,grid.VOL,self.nblocks)
        else:
            self.blockVols=np.array(blockVols,dtype=float)[:self.nblocks+1]
        self.live=blockCellCounts(self.p,self.nblocks)>0
        self.NumBlocks0=int(np.sum(self.live))
        #Volume table the naive method regenerates block volumes from
        self.ids0=np.flatnonzero(self.live)
        self.blockVols0=None if blockVols is None else self.blockVols.copy()
        self.totalVol=float(np.sum(self.blockVols[self.live]))

        self.meanVol=self.totalVol/self.NumBlocks0
        if(not self.meanVol>0):
            raise InvalidPartitionError('Mean block volume is %g, nothing to compare block volumes to'%(self.meanVol))
        self.minVol=self.threshold*self.meanVol

        self.remap=BlockRemap(self.nblocks)
        self.history=[]
        self.iteration=0
        self.state='Running'
        self.failedBlock=None

        self.blockNbrs={}
        if(self.method=='incremental'):
            adj=blockAdjacency(grid,self.p,self.nblocks)
            for b in np.flatnonzero(self.live):
                self.blockNbrs[int(b)]=set(getBlockNeighbors(adj,b).tolist())

    def get_selector(self,policy):
        if(callable(policy)):
            return policy
        name=str(policy).replace('-','_')
        if(name not in MergePolicies):
            raise ValueError("Unknown merge policy [%s], use one of %s"%(policy,MergePolicies))
        return globals()['select_'+name]

    @property
    def NumBlocks(self):
        return int(np.sum(self.live))

    def smallestBlock(self):
        #Live block with the smallest volume, lowest block number on ties
        vols=np.where(self.live,self.blockVols,np.inf)
        block=int(np.argmin(vols))
        return block,vols[block]

    def getNeighbors(self,block):
        if(self.method=='naive'):
            adj=blockAdjacency(self.grid,self.p,self.nblocks)
            return getBlockNeighbors(adj,block)

        #Neighbor numbers may be stale, follow them to the live block
        nbrs=set(self.remap.resolve(self.blockNbrs[block]).tolist())
        nbrs.discard(block)
        self.blockNbrs[block]=nbrs
        return np.array(sorted(nbrs),dtype=int)

    def step(self):
        """One merge iteration, returns the new state"""
        if(self.state!='Running'):
            return self.state

        if(self.method=='naive'):
            if(self.blockVols0 is None):
                self.blockVols=blockVolumes(self.p,self.grid.VOL,self.nblocks)
            else:
                #Re-aggregate the given table over the blocks that absorbed each entry
                self.blockVols=np.bincount(self.remap.resolve(self.ids0),
                                           weights=self.blockVols0[self.ids0],minlength=self.nblocks+1)
            self.live=blockCellCounts(self.p,self.nblocks)>0

        block,vol=self.smallestBlock()
        if(vol>=self.minVol):
            self.state='Converged'
            return self.state

        nlist=self.getNeighbors(block)
        if(len(nlist)==0):
            self.state='Failed'
            self.failedBlock=block
            print('[Merge] Block %d (volume %g) has no neighbors!'%(block,vol))
            return self.state

        assert self.iteration<self.NumBlocks0-1, \
            '[Error] Merge number %d exceeds the initial number of blocks %d!'%(self.iteration+1,self.NumBlocks0)

        target=int(nlist[self.selector(nlist,self.blockVols[nlist])])

        if(self.callback is not None):
            view=self.p.view()
            view.flags.writeable=False
            self.callback(self.iteration+1,view,block,nlist.copy())

        self.mergeBlock(block,target)
        return self.state

    def mergeBlock(self,block,target):
        #Move all cells of [block] into [target]
        vol,nvol=self.blockVols[block],self.blockVols[target]
        self.p[self.p==block]=target
        self.blockVols[target]=vol+nvol
        self.blockVols[block]=0.0
        self.live[block]=False
        self.remap.merge(block,target)
        if(self.method=='incremental'):
            self.blockNbrs[target]|=self.blockNbrs.pop(block)

        self.history.append((block,target))
        self.iteration+=1
        if(self.verbose):
            print('     Iteration %d: block %d (%g) -> block %d (%g), %d blocks left'
                  %(self.iteration,block,vol,target,nvol,self.NumBlocks))

    def run(self):
        """Merge until converged

        Returns
        -------
        p         -- compressed partition vector, block numbers keep their relative order
                     (use compressPartition(merger.p,order="first") for first appearance order)
        blockVols -- volume of each compressed block, slot 0 unused
        """
        if(self.iteration==0 and self.state=='Running'):
            print('[Merge] %d blocks, mean volume %g, merging blocks below %g (%s, %s)'
                  %(self.NumBlocks0,self.meanVol,self.minVol,self.method,
                    self.policy if not callable(self.policy) else 'custom policy'))

        while(self.state=='Running'):
            self.step()

        if(self.state=='Failed'):
            raise NoNeighborError(self.failedBlock)

        assert np.isclose(np.sum(self.blockVols[self.live]),self.totalVol), \
            '[Error] Total block volume changed during merging!'

        ids=np.flatnonzero(self.live)
        p=compressPartition(self.p)
        blockVols=np.concatenate(([0.0],self.blockVols[ids]))
        print('[Merge] Done! %d merges, %d blocks left'%(len(self.history),len(ids)))
        return p,blockVols


def mergeSmallBlocks(grid,p,blockVols=None,**kwargs):
    """Merge small blocks of partition p, see mergeBlocks_opt for the options"""
    merger=BlockMerger(grid,p,mergeBlocks_opt(**kwargs),blockVols)
    return merger.run()
