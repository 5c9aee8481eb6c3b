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

from utils import *


class FineGrid:
    def __init__(self,neighbors=None,volumes=None,areas=None):
        """Fine grid topology used by the coarsening tools

        Arguments
        ---------
        N          -- Number of (active) cells, numbered 1..N
        neighbors  -- (Nf,2) face-cell table, 0 marks the outside of the grid
        VOL        -- Cell volumes, VOL[c-1] belongs to cell c
        areas      -- Face areas, used to ignore weak couplings
        NX, NY, NZ -- Logical dimension, only for Cartesian grids
        cellIJK    -- Logical index ijk of each active cell
        """
        self.GRID_type='NaN'
        self.NX,self.NY,self.NZ=0,0,0
        self.N=0

        #Cartesian gridblock data
        self.DX=[]
        self.DY=[]
        self.DZ=[]
        self.ACTNUM=[]
        self.cellIJK=np.zeros(0,dtype=int)

        #Topology and geometry seen by the partition tools
        self.neighbors=np.zeros((0,2),dtype=int)
        self.VOL=np.zeros(0)
        self.areas=np.zeros(0)

        if(neighbors is not None):
            self.setTopology(neighbors,volumes,areas)

    def setTopology(self,neighbors,volumes,areas=None):
        """Load a general grid from its face-cell table and cell volumes

        Author:Bin Wang(binwang.0213@gmail.com)
        Date: Sep. 2018
        """
        assert volumes is not None, '[Error] Cell volumes are required!'
        self.GRID_type='Unstructured'
        self.VOL=np.array(volumes,dtype=float).ravel()
        self.N=len(self.VOL)
        self.cellIJK=np.arange(self.N)

        self.neighbors=np.array(neighbors,dtype=int).reshape((-1,2))
        if(len(self.neighbors)>0):
            assert self.neighbors.min()>=0 and self.neighbors.max()<=self.N, \
                '[Error] Face-cell table refers to cells outside 1..%d!'%(self.N)

        if(areas is None):
            self.areas=np.ones(len(self.neighbors))
        else:
            self.areas=np.array(areas,dtype=float).ravel()
            assert len(self.areas)==len(self.neighbors), '[Error] Incompatible face areas data size!'

    def buildCartGrid(self,physDims=[100.0,100.0,10.0],gridDims=[10,10,1],actnum=None):
        """Build simple cartesian grid

        Arguments
        ---------
        physDims -- physical dimensions of system
        gridDims -- grid dimension of system
        actnum   -- active cell flags in ijk ordering, all active if not given

        Author:Bin Wang(binwang.0213@gmail.com)
        Date: Feb. 2019
        """
        self.NX,self.NY,self.NZ=[int(n) for n in gridDims]
        NX,NY,NZ=self.NX,self.NY,self.NZ
        NumLogical=NX*NY*NZ
        self.GRID_type='Cartesian'

        #Assign value to cart grid
        self.DX=np.ones(NumLogical)*physDims[0]/NX
        self.DY=np.ones(NumLogical)*physDims[1]/NY
        self.DZ=np.ones(NumLogical)*physDims[2]/NZ

        if(actnum is None):
            actnum=np.ones(NumLogical,dtype=int)
        self.ACTNUM=np.array(actnum,dtype=int).ravel()
        assert len(self.ACTNUM)==NumLogical, '[Error] Incompatible ACTNUM data size!'

        self.cellIJK=np.flatnonzero(self.ACTNUM)
        self.N=len(self.cellIJK)
        self.VOL=(self.DX*self.DY*self.DZ)[self.cellIJK]

        #Active cell number (1..N) of every logical cell, 0 for inactive cells
        CellNo=np.zeros(NumLogical,dtype=int)
        CellNo[self.cellIJK]=np.arange(1,self.N+1)
        CellNo=CellNo.reshape((NZ,NY,NX))

        #X,Y,Z faces
        neighbors,areas=[],[]
        FaceAreas=[self.DY*self.DZ,self.DX*self.DZ,self.DX*self.DY]
        for axis,area in zip([2,1,0],FaceAreas):
            n,a=cartFaces(CellNo,area.reshape((NZ,NY,NX)),axis)
            neighbors.append(n)
            areas.append(a)
        self.neighbors=np.concatenate(neighbors)
        self.areas=np.concatenate(areas)

        self.print_info()

    @property
    def NumFaces(self):
        return len(self.neighbors)

    def internalFaces(self):
        #Faces with a cell on both sides
        return np.all(self.neighbors>0,axis=1)

    def print_info(self):
        print("     Grid Type=%s Grid" %(self.GRID_type))
        if(self.GRID_type=='Cartesian'):
            print("     Grid Dimension(NX,NY,NZ): (%s x %s x %s)"%(self.NX,self.NY,self.NZ))
        print("     NumOfGrids=%s"%(self.N))
        print("     NumOfFaces=%s"%(self.NumFaces))
