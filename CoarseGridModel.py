#########################################################################
#       (C) 2017 Department of Petroleum Engineering,                   #
#       Univeristy of Louisiana at Lafayette, Lafayette, US.            #
#                                                                       #
# This code is released under the terms of the BSD license, and thus    #
# free for commercial and research use. Feel free to use the code into  #
# your own project with a PROPER REFERENCE.                             #
#                                                                       #
# PyGRDECL Code                                                         #
# Author: Bin Wang                                                      #
# Email: binwang.0213@gmail.com                                         #
# Contributing Author: Mustapha Zakari (MZ)                             #
# Email: mustapha.zakari@univ-lorraine.fr                               #
#########################################################################

import numpy as np

from FineGrid import *
from Partitioner import *
from BlockMerger import *

#############################################
#
#  Coarse grid construction class
#
#############################################

class CoarseGridModel:
    def __init__(self,grid=None):
        """Coarse partition of a fine grid and its block data

        Arguments
        ---------
        FineGrid       -- the fine grid being coarsened
        Partition      -- block number of each fine cell (1..NumBlocks)
        BlockVols      -- volume of each block, slot 0 unused
        BlockNeighbors -- (Nb,2) pairs of blocks sharing a fine face
        MergeHistory   -- (block,target) pairs of the last merging run

        Merge options (threshold, policy, method) can be set on the
        object before calling mergeSmallBlocks.

        Author:Bin Wang(binwang.0213@gmail.com)
        Date: Sep. 2018
        """
        self.FineGrid=FineGrid() if grid is None else grid
        self.Partition=np.zeros(0,dtype=int)
        self.BlockVols=np.zeros(1)
        self.BlockNeighbors=np.zeros((0,2),dtype=int)
        self.MergeHistory=[]

        self.threshold=0.1
        self.policy='largest_neighbor'
        self.method='incremental'

    @property
    def NumBlocks(self):
        return len(self.BlockVols)-1

    def buildCartGrid(self,physDims=[100.0,100.0,10.0],gridDims=[10,10,1],actnum=None):
        #* Create simple cartesian grid
        print('[CoarseGrid] Building Cartesian fine grid....')
        self.FineGrid.buildCartGrid(physDims,gridDims,actnum)

    def partitionUI(self,coarseDims):
        #* Uniform partition in logical space, blocks without active cells are removed
        print('[CoarseGrid] Uniform partition into (%d x %d x %d) blocks'%tuple(coarseDims))
        p=partitionUI(self.FineGrid,coarseDims)
        self.Partition=compressPartition(p)
        self.generateCoarseGrid()
        return self.Partition

    def processPartition(self,facesToIgnore=None):
        #* Split blocks that are not connected
        self.Partition=processPartition(self.FineGrid,self.Partition,facesToIgnore)
        self.generateCoarseGrid()
        return self.Partition

    def generateCoarseGrid(self):
        """Block volumes and block connections of the current partition"""
        assert len(self.Partition)==self.FineGrid.N, '[Error] Partition does not match the fine grid!'
        self.BlockVols=blockVolumes(self.Partition,self.FineGrid.VOL)
        self.BlockNeighbors=blockFaceNeighbors(self.FineGrid,self.Partition)

    def smallBlocks(self,threshold=None):
        #Blocks with a volume below threshold*(mean block volume)
        if(threshold is None):
            threshold=self.threshold
        vols=self.BlockVols[1:]
        return np.flatnonzero(vols<threshold*np.mean(vols))+1

    def mergeSmallBlocks(self,threshold=None,policy=None,method=None,callback=None,verbose=False):
        """Merge blocks with small volume into one of their neighbors

        The block with the smallest volume is merged with a neighbor, chosen
        by [policy], until all blocks are above threshold*(mean volume).
        See mergeBlocks_opt for the options.

        Author:Bin Wang(binwang.0213@gmail.com)
        Date: Sep. 2018
        """
        opt=mergeBlocks_opt(threshold=self.threshold if threshold is None else threshold,
                            policy=self.policy if policy is None else policy,
                            method=self.method if method is None else method,
                            verbose=verbose,callback=callback)
        merger=BlockMerger(self.FineGrid,self.Partition,opt,self.BlockVols)
        self.Partition,self.BlockVols=merger.run()
        self.MergeHistory=merger.history
        self.BlockNeighbors=blockFaceNeighbors(self.FineGrid,self.Partition)
        return self.Partition

    def print_info(self):
        vols=self.BlockVols[1:]
        print('[CoarseGrid] NumOfBlocks=%d NumOfBlockFaces=%d'%(self.NumBlocks,len(self.BlockNeighbors)))
        if(self.NumBlocks>0):
            print('     Block volume min=%g max=%g mean=%g, max/min=%g'
                  %(vols.min(),vols.max(),vols.mean(),vols.max()/max(vols.min(),np.finfo(float).tiny)))
