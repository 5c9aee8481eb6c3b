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
import scipy.sparse as SP
from scipy.sparse.csgraph import connected_components

from utils import *

#############################################
#
#  Partition vector tools
#
#  A partition vector p holds one positive block
#  number per fine cell, p[c-1] is the block of cell c.
#  Block tables (volumes, cell counts) are indexed
#  by block number, slot 0 is unused.
#
#############################################

class PartitionError(Exception):
    """Base class of the errors raised while coarsening a grid"""


class InvalidPartitionError(PartitionError):
    """Partition vector is inconsistent with the grid or its block table"""


def compressPartition(p,order="sorted"):
    """Renumber a partition vector to the dense range 1..NumBlocks

    Arguments
    ---------
    p     -- partition vector, block numbers may have gaps
    order -- "sorted": keep the relative order of the block numbers
             "first" : number blocks by their first appearance in p

    Author:Bin Wang(binwang.0213@gmail.com)
    Date: Sep. 2018
    """
    p=np.asarray(p).ravel()
    if(order=="sorted"):
        ids,inv=np.unique(p,return_inverse=True)
        return inv.ravel().astype(int)+1
    elif(order=="first"):
        ids,first,inv=np.unique(p,return_index=True,return_inverse=True)
        rank=np.empty(len(ids),dtype=int)
        rank[np.argsort(first,kind='stable')]=np.arange(1,len(ids)+1)
        return rank[inv.ravel()]
    raise ValueError("Unknown compress order [%s], use 'sorted' or 'first'"%(order))

def partitionUI(grid,coarseDims):
    """Uniform partition of a Cartesian grid in logical index space

    Block (bi,bj,bk) of a CX x CY x CZ coarse grid gets the number
    1+bi+CX*(bj+CY*bk). Blocks holding only inactive cells are not
    present in the result, so the vector may have gaps.

    Author:Bin Wang(binwang.0213@gmail.com)
    Date: Sep. 2018
    """
    NX,NY,NZ=grid.NX,grid.NY,grid.NZ
    CX,CY,CZ=[int(n) for n in coarseDims]
    assert grid.GRID_type=='Cartesian', '[Error] partitionUI needs a logically Cartesian grid!'
    assert 0<CX<=NX and 0<CY<=NY and 0<CZ<=NZ, \
        '[Error] Coarse dimension (%d x %d x %d) exceeds fine dimension (%d x %d x %d)!'%(CX,CY,CZ,NX,NY,NZ)

    i,j,k=getI_J_K(np.asarray(grid.cellIJK),NX,NY,NZ)
    bi=(i*CX)//NX
    bj=(j*CY)//NY
    bk=(k*CZ)//NZ
    return 1+bi+CX*(bj+CY*bk)

def blockVolumes(p,volumes,nblocks=None):
    #Total volume of each block, sum of the volumes of its cells
    p=np.asarray(p,dtype=int)
    assert len(p)==len(volumes), '[Error] Incompatible partition and volume data size! %d-%d'%(len(p),len(volumes))
    minlength=0 if nblocks is None else nblocks+1
    return np.bincount(p,weights=np.asarray(volumes,dtype=float),minlength=minlength)

def blockCellCounts(p,nblocks=None):
    minlength=0 if nblocks is None else nblocks+1
    return np.bincount(np.asarray(p,dtype=int),minlength=minlength)

def blockFaceNeighbors(grid,p):
    """Pairs of blocks coupled by at least one fine face

    Both cells of every face are mapped to their block, the boundary
    marker 0 stays 0. Faces with different blocks on each side are the
    coarse faces.

    Returns
    -------
    (Nb,2) array of unique pairs (blockA,blockB) with blockA<blockB
    """
    pp=np.concatenate(([0],np.asarray(p,dtype=int)))
    B=pp[grid.neighbors]
    B=B[(B[:,0]!=B[:,1]) & np.all(B>0,axis=1)]
    if(len(B)==0):
        return np.zeros((0,2),dtype=int)
    return np.unique(np.sort(B,axis=1),axis=0)

def blockAdjacency(grid,p,nblocks=None):
    #Symmetric block-block connection matrix, row b lists the neighbors of block b
    pairs=blockFaceNeighbors(grid,p)
    if(nblocks is None):
        nblocks=int(np.max(p)) if len(p)>0 else 0
    rows=np.concatenate((pairs[:,0],pairs[:,1]))
    cols=np.concatenate((pairs[:,1],pairs[:,0]))
    return SP.csr_matrix((np.ones(len(rows)),(rows,cols)),shape=(nblocks+1,nblocks+1))

def getBlockNeighbors(adjacency,block):
    #Distinct neighbors of a block in ascending order
    row=adjacency.indices[adjacency.indptr[block]:adjacency.indptr[block+1]]
    return np.unique(row[(row!=block) & (row>0)])

def processPartition(grid,p,facesToIgnore=None):
    """Split blocks into connected pieces

    A block of a uniform partition may hold cells that are disconnected
    because of erosion, faults or inactive cells. Every block is split
    into its connected components over the fine faces. Faces flagged
    in [facesToIgnore] do not connect cells, e.g. grid.areas<250.

    Author:Bin Wang(binwang.0213@gmail.com)
    Date: Sep. 2018
    """
    p=np.asarray(p,dtype=int)
    N=grid.N
    assert len(p)==N, '[Error] Incompatible partition data size! %d-%d'%(len(p),N)

    active=grid.internalFaces()
    if(facesToIgnore is not None):
        facesToIgnore=np.asarray(facesToIgnore,dtype=bool)
        assert len(facesToIgnore)==grid.NumFaces, '[Error] Incompatible face mask size!'
        active&=~facesToIgnore
    c1,c2=grid.neighbors[active,0]-1,grid.neighbors[active,1]-1
    same=p[c1]==p[c2]
    c1,c2=c1[same],c2[same]

    A=SP.coo_matrix((np.ones(len(c1)),(c1,c2)),shape=(N,N))
    NumComp,labels=connected_components(A,directed=False)

    #Order the pieces by their parent block first
    q=compressPartition(p.astype(np.int64)*NumComp+labels)

    NumBlocks,NumPieces=len(np.unique(p)),int(q.max()) if N>0 else 0
    if(NumPieces>NumBlocks):
        print('[Partition] Split disconnected blocks: %d blocks -> %d blocks'%(NumBlocks,NumPieces))
    return q

def checkPartition(grid,p,blockVols=None):
    """Check a partition vector before coarsening starts

    Raises InvalidPartitionError when a cell has no block or when a
    recorded block volume table gives volume to a block without cells.
    Returns the partition as an integer array.
    """
    p=np.asarray(p)
    if(p.ndim!=1 or len(p)!=grid.N):
        raise InvalidPartitionError('Partition has %d entries, grid has %d cells'%(p.size,grid.N))
    if(len(p)==0):
        raise InvalidPartitionError('Partition of an empty grid')
    if(not np.issubdtype(p.dtype,np.integer)):
        if(not np.all(np.isfinite(p)) or np.any(p!=np.round(p))):
            raise InvalidPartitionError('Partition holds non-integer block numbers')
    p=p.astype(int)

    bad=np.flatnonzero(p<1)
    if(len(bad)>0):
        raise InvalidPartitionError('Cell %d is not assigned to any block (block number %d)'%(bad[0]+1,p[bad[0]]))

    if(blockVols is not None):
        blockVols=np.asarray(blockVols,dtype=float)
        if(len(blockVols)<p.max()+1):
            raise InvalidPartitionError('Block volume table has %d slots, block %d has no volume'%(len(blockVols),p.max()))
        counts=blockCellCounts(p,len(blockVols)-1)
        empty=np.flatnonzero((counts==0) & (blockVols!=0))
        empty=empty[empty>0]
        if(len(empty)>0):
            raise InvalidPartitionError('Block %d has no cells but a volume of %g'%(empty[0],blockVols[empty[0]]))
    return p
