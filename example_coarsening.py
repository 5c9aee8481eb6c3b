import numpy as np
from CoarseGridModel import *

# 1.1 Set physical dimensions in physDims (m)
physDims=[4000.0,12000.0,100.0]

# 1.2 Set model grid dimensions in gridDims
Nx=40;  Ny=120;  Nz=20
gridDims=[Nx,Ny,Nz]

# 1.3 Erode the top layers, cells above a tilted surface are inactive
ijk=np.arange(Nx*Ny*Nz)
i,j,k=getI_J_K(ijk,Nx,Ny,Nz)
actnum=(k<Nz-(i*Nz)//(2*Nx)-(j%7)).astype(int)

# 1.4 Create empty CoarseGridModel - Build Cartesian grid
Model=CoarseGridModel()
Model.buildCartGrid(physDims,gridDims,actnum)

# 2.1 Partition uniformly in logical space and split disconnected blocks
Model.partitionUI([6,12,3])
Model.processPartition()
Model.print_info()
print('[Example] %d blocks below 10%% of the mean block volume'%(len(Model.smallBlocks(0.1))))

# 2.2 Merge small blocks with the naive method, print the first merges
P0=Model.Partition.copy()
def show_merge(iteration,p,block,nlist):
    if(iteration in [12,13,15]):
        print('     Merge %d: block %d, neighbors %s'%(iteration,block,list(nlist)))

Model.method='naive'
Model.mergeSmallBlocks(callback=show_merge)
Model.print_info()

# 2.3 Redo the partition, a sealing fault between i=16 and i=17 does not
# connect cells when splitting blocks, merge with the incremental method
nb=Model.FineGrid.neighbors
ci,cj,ck=getI_J_K(Model.FineGrid.cellIJK,Nx,Ny,Nz)
iL=np.where(nb[:,0]>0,ci[nb[:,0]-1],-1)
iR=np.where(nb[:,1]>0,ci[nb[:,1]-1],-1)
fault=(iL==16)&(iR==17)

Model.partitionUI([6,12,3])
Model.processPartition(facesToIgnore=fault)
Model.method='incremental'
Model.policy='smallest_neighbor'
Model.mergeSmallBlocks()
Model.print_info()
